"""
Glob pattern compilation and matching using pathspec.

Patterns use gitignore-style wildmatch semantics: `*` and `?` stay within one
path segment, `**` spans segments, a pattern without an inner `/` also matches
the basename at any depth, and a trailing `/` restricts a pattern to
directories. Paths are always matched in `/`-separated form.
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import pathspec

from code_packager.errors import InvalidPatternError

# Characters that indicate a spec is a glob pattern rather than a literal path.
GLOB_CHARS = frozenset("*?[")

_MULTI_SLASH = re.compile(r"/{2,}")


@dataclass(frozen=True)
class CompiledPattern:
    """
    A compiled glob pattern. `spec` is `None` for the empty pattern, which
    matches nothing.
    """

    source: str
    anchored: bool = False
    spec: pathspec.PathSpec | None = field(default=None, repr=False, compare=False)

    def matches(self, relative_path: str, is_dir: bool = False) -> bool:
        """
        Test a root-relative path. Directories are matched with a trailing `/`
        so that directory-only patterns (`build/`) apply to them.
        """
        if self.spec is None:
            return False
        rel = normalize_path(relative_path)
        if not rel or rel == "/":
            return False
        if is_dir and not rel.endswith("/"):
            rel += "/"
        return self.spec.match_file(rel)


def normalize_path(path: str | os.PathLike[str]) -> str:
    """Convert a relative path to `/`-separated form without `./` prefixes."""
    text = os.fspath(path)
    if os.sep != "/":
        text = text.replace(os.sep, "/")
    if os.altsep and os.altsep != "/":
        text = text.replace(os.altsep, "/")
    text = _MULTI_SLASH.sub("/", text)
    while text.startswith("./"):
        text = text[2:]
    if text == ".":
        return ""
    return text


def is_glob(spec: str) -> bool:
    return any(c in spec for c in GLOB_CHARS)


def _check_syntax(pattern: str) -> None:
    """Reject syntax the matcher does not support or cannot parse."""
    if pattern.startswith("!"):
        raise InvalidPatternError(pattern, "negation ('!') is not supported")
    if "***" in pattern:
        raise InvalidPatternError(pattern, "runs of more than two '*' are not supported")

    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "\\":
            if i + 1 >= n:
                raise InvalidPatternError(pattern, "trailing escape character")
            i += 2
            continue
        if ch == "[":
            j = i + 1
            if j < n and pattern[j] in "!^":
                j += 1
            if j < n and pattern[j] == "]":
                j += 1
            while j < n and pattern[j] != "]":
                if pattern[j] == "/":
                    raise InvalidPatternError(pattern, "path separator inside '[...]'")
                j += 1
            if j >= n:
                raise InvalidPatternError(pattern, "unclosed '['")
            i = j + 1
            continue
        i += 1


def compile_pattern(pattern: str, *, anchored: bool = False) -> CompiledPattern:
    """
    Compile a glob pattern. With `anchored=True` a slash-free pattern matches
    only at the root instead of at any depth.

    Raises `InvalidPatternError` for malformed or unsupported syntax.
    """
    text = pattern.strip()
    if not text:
        return CompiledPattern(source=pattern, anchored=anchored)

    _check_syntax(text)

    while text.startswith("./"):
        text = text[2:]
    if text.startswith("#"):
        # A leading '#' would otherwise be read as a comment.
        text = "\\" + text
    if anchored and not text.startswith("/"):
        text = "/" + text

    try:
        spec = pathspec.PathSpec.from_lines("gitignore", [text])
    except ValueError as e:
        raise InvalidPatternError(pattern, str(e)) from e

    return CompiledPattern(source=pattern, anchored=anchored, spec=spec)


def compile_patterns(patterns: Iterable[str], *, anchored: bool = False) -> list[CompiledPattern]:
    """Compile every pattern, failing on the first invalid one."""
    return [compile_pattern(p, anchored=anchored) for p in patterns]


def matches(compiled: CompiledPattern, relative_path: str, is_dir: bool = False) -> bool:
    return compiled.matches(relative_path, is_dir=is_dir)


def matches_any(
    patterns: Sequence[CompiledPattern], relative_path: str, is_dir: bool = False
) -> bool:
    return any(p.matches(relative_path, is_dir=is_dir) for p in patterns)
