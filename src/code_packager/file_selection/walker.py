"""
Deterministic directory traversal with ignore-pattern pruning.

Entries are visited depth-first in pre-order, sorted by name at every level, so
an unchanged tree always produces the same file order.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Sequence
from pathlib import Path

from code_packager.file_selection.patterns import CompiledPattern, matches_any, normalize_path
from code_packager.file_selection.types import CandidateFile, SkippedFile, SkipReason

LOGGER = logging.getLogger(__name__)


class DirectoryWalker:
    """
    Walks directory trees, skipping anything matched by the ignore patterns.

    Ignore patterns are tested against the root-relative path, the reported
    (prefixed) path, and the path relative to each directory in
    `ignore_frames` that contains the entry. Problems with individual entries
    are collected in `warnings` and `skipped` rather than raised.
    """

    def __init__(
        self,
        ignore: Sequence[CompiledPattern] = (),
        ignore_frames: Sequence[Path] = (),
    ) -> None:
        self._ignore: list[CompiledPattern] = list(ignore)
        self._frames: list[Path] = [Path(f).absolute() for f in ignore_frames]
        self.warnings: list[str] = []
        self.skipped: list[SkippedFile] = []

    def walk(
        self,
        root: str | Path,
        *,
        prefix: str = "",
        max_depth: int | None = None,
    ) -> list[CandidateFile]:
        """
        Return every non-ignored regular file under `root`.

        `prefix` is prepended to each reported relative path. `max_depth`
        limits how many directory levels are read (1 = only `root` itself).
        Raises `FileNotFoundError` or `NotADirectoryError` for a bad root.
        """
        root_path = Path(root)
        if not root_path.exists():
            raise FileNotFoundError(f"Directory not found: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Not a directory: {root}")

        result: list[CandidateFile] = []
        self._walk_directory(
            root_path.absolute(), "", normalize_path(prefix).strip("/"), 1, max_depth, result
        )
        LOGGER.debug("walk.done root=%s files=%d", root, len(result))
        return result

    def is_ignored(self, path: Path, labels: Iterable[str], is_dir: bool = False) -> bool:
        """Check an entry against the ignore patterns in every applicable frame."""
        if not self._ignore:
            return False
        for label in labels:
            if label and matches_any(self._ignore, label, is_dir=is_dir):
                return True
        for frame in self._frames:
            try:
                rel = path.relative_to(frame)
            except ValueError:
                continue
            if rel.parts and matches_any(self._ignore, rel.as_posix(), is_dir=is_dir):
                return True
        return False

    def _warn(self, message: str) -> None:
        LOGGER.warning(message)
        self.warnings.append(message)

    def _walk_directory(
        self,
        directory: Path,
        local_rel: str,
        prefix: str,
        depth: int,
        max_depth: int | None,
        result: list[CandidateFile],
    ) -> None:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            if not local_rel:
                raise
            self._warn(f"Cannot list directory {_join(prefix, local_rel)}: {e}")
            return

        for entry in entries:
            local = _join(local_rel, entry.name)
            label = _join(prefix, local)
            entry_path = directory / entry.name
            try:
                is_symlink = entry.is_symlink()
                is_dir = entry.is_dir()
            except OSError as e:
                self._warn(f"Cannot stat {label}: {e}")
                continue

            if self.is_ignored(entry_path, (local, label), is_dir=is_dir):
                LOGGER.debug("walk.ignored path=%s dir=%s", label, is_dir)
                continue

            if is_dir and is_symlink:
                # Never traverse through links; this also rules out cycles.
                self.skipped.append(
                    SkippedFile(label, SkipReason.symlinked_dir, "symbolic link to a directory")
                )
                continue

            if is_dir:
                if max_depth is None or depth < max_depth:
                    self._walk_directory(entry_path, local, prefix, depth + 1, max_depth, result)
                continue

            try:
                is_file = entry.is_file()
            except OSError as e:
                self._warn(f"Cannot stat {label}: {e}")
                continue
            if not is_file:
                detail = "broken symbolic link" if is_symlink else "not a regular file"
                self.skipped.append(SkippedFile(label, SkipReason.not_regular, detail))
                continue

            result.append(CandidateFile(path=entry_path, relative_path=label))


def _join(base: str, name: str) -> str:
    return f"{base}/{name}" if base else name


def walk(root: str | Path, ignore: Sequence[CompiledPattern] = ()) -> list[CandidateFile]:
    """Walk `root` with a fresh `DirectoryWalker`, discarding its warnings."""
    return DirectoryWalker(ignore).walk(root)
