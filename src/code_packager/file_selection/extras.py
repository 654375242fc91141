"""
Expansion of extra-file specs (literal paths, directories and globs) into
concrete files, relative to an explicit search root.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from code_packager.errors import MissingExtraFileError
from code_packager.file_selection.patterns import (
    CompiledPattern,
    compile_pattern,
    is_glob,
    normalize_path,
)
from code_packager.file_selection.types import CandidateFile, SkippedFile, SkipReason
from code_packager.file_selection.walker import DirectoryWalker

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtraSpec:
    """
    One parsed extra-file spec. For globs, `base` is the leading run of
    literal segments and `pattern` the anchored remainder.
    """

    source: str
    base: str
    pattern: CompiledPattern | None = None
    max_depth: int | None = None


@dataclass
class ExtraFileResult:
    files: list[CandidateFile] = field(default_factory=list)
    missing: list[MissingExtraFileError] = field(default_factory=list)
    skipped: list[SkippedFile] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def parse_extra_spec(spec: str) -> ExtraSpec:
    """
    Split a spec into its literal base and glob remainder. Raises
    `InvalidPatternError` if the glob part is malformed.
    """
    text = spec.strip()
    if not is_glob(text):
        return ExtraSpec(source=spec, base=text)

    norm = normalize_path(text)
    segments = norm.split("/")
    split_at = next(i for i, seg in enumerate(segments) if is_glob(seg))
    base = "/".join(segments[:split_at]) or ("/" if norm.startswith("/") else ".")
    rest = "/".join(segments[split_at:])

    if "**" in rest or rest.endswith("/"):
        max_depth = None
    else:
        max_depth = rest.count("/") + 1

    return ExtraSpec(
        source=spec,
        base=base,
        pattern=compile_pattern(rest, anchored=True),
        max_depth=max_depth,
    )


def _label(path: Path, root: Path) -> str:
    """Label a path relative to the search root, falling back to `../` or absolute forms."""
    try:
        rel = path.relative_to(root).as_posix()
        return "" if rel == "." else rel
    except ValueError:
        pass
    try:
        return Path(os.path.relpath(path, root)).as_posix()
    except ValueError:
        return path.as_posix()


class ExtraFileResolver:
    """
    Resolves extra-file specs against a search root.

    Glob misses are silent. Missing literal paths are reported through
    `ExtraFileResult.missing`. Ignore patterns take precedence over every spec.
    """

    def __init__(self, specs: Sequence[str], ignore: Sequence[CompiledPattern] = ()) -> None:
        self._ignore: list[CompiledPattern] = list(ignore)
        self._specs: list[ExtraSpec] = [parse_extra_spec(s) for s in specs if s.strip()]

    @property
    def specs(self) -> list[ExtraSpec]:
        return list(self._specs)

    def resolve(
        self, search_root: str | Path, *, ignore_frames: Sequence[Path] = ()
    ) -> ExtraFileResult:
        """
        Expand all specs, in order. `ignore_frames` are extra directories
        whose relative paths are also checked against the ignore patterns.
        """
        root = Path(search_root).absolute()
        walker = DirectoryWalker(self._ignore, ignore_frames)
        result = ExtraFileResult()

        for spec in self._specs:
            try:
                if spec.pattern is None:
                    found = self._resolve_literal(spec, root, walker, result)
                else:
                    found = self._resolve_glob(spec, spec.pattern, root, walker, result)
            except MissingExtraFileError as e:
                LOGGER.warning("extras.missing spec=%s", spec.source)
                result.missing.append(e)
                continue
            LOGGER.debug("extras.resolved spec=%s files=%d", spec.source, len(found))
            result.files.extend(found)

        result.skipped.extend(walker.skipped)
        result.warnings.extend(walker.warnings)
        return result

    def _resolve_literal(
        self, spec: ExtraSpec, root: Path, walker: DirectoryWalker, result: ExtraFileResult
    ) -> list[CandidateFile]:
        target = Path(os.path.normpath(root / spec.base))
        label = _label(target, root)

        if target.is_file():
            if walker.is_ignored(target, (label,)):
                result.skipped.append(
                    SkippedFile(label, SkipReason.ignored, f"extra file {spec.source!r} is ignored")
                )
                return []
            return [CandidateFile(path=target, relative_path=label)]

        if target.is_dir():
            if label and walker.is_ignored(target, (label,), is_dir=True):
                result.skipped.append(
                    SkippedFile(label, SkipReason.ignored, f"extra directory {spec.source!r} is ignored")
                )
                return []
            return self._walk(walker, target, label, None, result)

        if target.exists() or target.is_symlink():
            result.skipped.append(SkippedFile(label, SkipReason.not_regular, "not a regular file"))
            return []

        raise MissingExtraFileError(spec.source)

    def _resolve_glob(
        self,
        spec: ExtraSpec,
        pattern: CompiledPattern,
        root: Path,
        walker: DirectoryWalker,
        result: ExtraFileResult,
    ) -> list[CandidateFile]:
        base = Path(os.path.normpath(root / spec.base))
        if not base.is_dir():
            return []
        base_label = _label(base, root)
        if base_label and walker.is_ignored(base, (base_label,), is_dir=True):
            return []

        found: list[CandidateFile] = []
        for candidate in self._walk(walker, base, base_label, spec.max_depth, result):
            local = candidate.path.relative_to(base).as_posix()
            if pattern.matches(local):
                found.append(candidate)
        return found

    def _walk(
        self,
        walker: DirectoryWalker,
        directory: Path,
        label: str,
        max_depth: int | None,
        result: ExtraFileResult,
    ) -> list[CandidateFile]:
        try:
            return walker.walk(directory, prefix=label, max_depth=max_depth)
        except OSError as e:
            message = f"Cannot list directory {label or '.'}: {e}"
            LOGGER.warning(message)
            result.warnings.append(message)
            return []


def resolve(
    specs: Sequence[str],
    search_root: str | Path,
    ignore: Sequence[CompiledPattern] = (),
) -> list[CandidateFile]:
    """Resolve specs and return only the files, dropping warnings and misses."""
    return ExtraFileResolver(specs, ignore).resolve(search_root).files
