"""
File selection: glob pattern matching, deterministic directory walking, and
extra-file resolution.

No imports from `code_packager` outside this package except `errors`.

Usage::

    from code_packager.file_selection import DirectoryWalker, compile_patterns

    ignore = compile_patterns(["target/", "*.tmp"])
    walker = DirectoryWalker(ignore)
    files = walker.walk("src")
"""

from code_packager.file_selection.extras import ExtraFileResolver, ExtraFileResult
from code_packager.file_selection.patterns import (
    CompiledPattern,
    compile_pattern,
    compile_patterns,
    matches,
    matches_any,
    normalize_path,
)
from code_packager.file_selection.types import CandidateFile, SkippedFile, SkipReason
from code_packager.file_selection.walker import DirectoryWalker

__all__ = [
    "CandidateFile",
    "CompiledPattern",
    "DirectoryWalker",
    "ExtraFileResolver",
    "ExtraFileResult",
    "SkipReason",
    "SkippedFile",
    "compile_pattern",
    "compile_patterns",
    "matches",
    "matches_any",
    "normalize_path",
]
