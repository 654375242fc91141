"""
Exception types raised by code-packager.

Fatal errors (`FatalConfigError` and its subclasses) abort a run before any
output is written. The others describe problems with a single file or spec and
are collected into the run summary instead of stopping the run.
"""

from __future__ import annotations


class PackagerError(Exception):
    """Base class for all code-packager errors."""


class FatalConfigError(PackagerError):
    """The input directory or output path is unusable. Nothing is written."""


class InvalidPatternError(FatalConfigError, ValueError):
    """A glob pattern in the ignore or extra-file lists is malformed."""

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern: str = pattern
        self.reason: str = reason
        super().__init__(f"Invalid pattern {pattern!r}: {reason}")


class MissingExtraFileError(PackagerError, FileNotFoundError):
    """A literal (non-glob) extra-file path does not exist."""

    def __init__(self, spec: str) -> None:
        self.spec: str = spec
        super().__init__(f"Extra file not found: {spec}")


class MarkerCollisionError(PackagerError, ValueError):
    """A file's path or content cannot be framed without breaking the artifact."""
