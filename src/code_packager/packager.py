"""
Packaging orchestration: validate the configuration, select files, and write
the artifact.

Every configuration problem is detected before the output file is opened, so a
fatal error never leaves a partial artifact behind. Problems with individual
files are collected into the returned `PackageSummary`.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from strif import atomic_output_file

from code_packager.errors import FatalConfigError, MarkerCollisionError
from code_packager.file_selection import (
    CandidateFile,
    DirectoryWalker,
    ExtraFileResolver,
    SkippedFile,
    SkipReason,
    compile_patterns,
)
from code_packager.serializer import check_frameable, check_label, write_block

LOGGER = logging.getLogger(__name__)

DEFAULT_INPUT_DIR = "."
DEFAULT_OUTPUT_FILE = "src_code.txt"


@dataclass
class PackagerConfig:
    """
    What to package and where to write it. `extra_files` are literal paths,
    directories or globs resolved against the search root; `ignore_patterns`
    apply to both the walk and the extra files.
    """

    input_dir: str | Path = DEFAULT_INPUT_DIR
    output_file: str | Path = DEFAULT_OUTPUT_FILE
    extra_files: list[str] = field(default_factory=list)
    ignore_patterns: list[str] = field(default_factory=list)


@dataclass
class PackageSummary:
    """Result of a packaging run."""

    output_file: Path
    packaged: list[str] = field(default_factory=list)
    skipped: list[SkippedFile] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def packaged_count(self) -> int:
        return len(self.packaged)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    @property
    def partial(self) -> bool:
        """True if the artifact was written but something needs attention."""
        return bool(self.warnings)


class Packager:
    """Runs one packaging pass for a `PackagerConfig`."""

    def __init__(self, config: PackagerConfig, search_root: str | Path | None = None) -> None:
        self.config: PackagerConfig = config
        self.search_root: Path = Path(search_root) if search_root is not None else Path.cwd()
        # Patterns are compiled up front so that bad syntax fails before any I/O.
        self._ignore = compile_patterns(config.ignore_patterns)
        self._extras = ExtraFileResolver(config.extra_files, self._ignore)

    def select(self) -> tuple[list[CandidateFile], PackageSummary]:
        """
        Validate the configuration and build the selection set without writing
        anything. Raises `FatalConfigError` for an unusable input or output path.
        """
        input_dir = self._check_input_dir()
        output_path = self._check_output_path()
        summary = PackageSummary(output_file=output_path)

        walker = DirectoryWalker(self._ignore)
        try:
            walked = walker.walk(input_dir)
        except OSError as e:
            raise FatalConfigError(f"Cannot read input directory {self.config.input_dir}: {e}") from e
        summary.skipped.extend(walker.skipped)
        summary.warnings.extend(walker.warnings)

        extra = self._extras.resolve(self.search_root, ignore_frames=[input_dir])
        summary.skipped.extend(extra.skipped)
        summary.warnings.extend(extra.warnings)
        summary.warnings.extend(str(e) for e in extra.missing)

        selection = self._merge(walked + extra.files, output_path, summary)
        LOGGER.info(
            "select.done walked=%d extra=%d selected=%d",
            len(walked),
            len(extra.files),
            len(selection),
        )
        return selection, summary

    def run(self) -> PackageSummary:
        selection, summary = self.select()

        with atomic_output_file(summary.output_file) as tmp_path:
            with open(tmp_path, "w", encoding="utf-8", newline="") as out:
                for candidate in selection:
                    content = self._read_text(candidate, summary)
                    if content is None:
                        continue
                    write_block(out, candidate.relative_path, content)
                    summary.packaged.append(candidate.relative_path)

        LOGGER.info(
            "package.done output=%s packaged=%d skipped=%d warnings=%d",
            summary.output_file,
            summary.packaged_count,
            summary.skipped_count,
            summary.warning_count,
        )
        return summary

    def _check_input_dir(self) -> Path:
        input_dir = Path(self.config.input_dir)
        if not input_dir.exists():
            raise FatalConfigError(f"Input directory not found: {input_dir}")
        if not input_dir.is_dir():
            raise FatalConfigError(f"Input path is not a directory: {input_dir}")
        if not os.access(input_dir, os.R_OK | os.X_OK):
            raise FatalConfigError(f"Input directory is not readable: {input_dir}")
        return input_dir.absolute()

    def _check_output_path(self) -> Path:
        output = Path(self.config.output_file)
        if output.is_dir():
            raise FatalConfigError(f"Output path is a directory: {output}")
        parent = output.absolute().parent
        if not parent.is_dir():
            raise FatalConfigError(f"Output directory does not exist: {parent}")
        if not os.access(parent, os.W_OK):
            raise FatalConfigError(f"Output directory is not writable: {parent}")
        if output.exists() and not os.access(output, os.W_OK):
            raise FatalConfigError(f"Output file is not writable: {output}")
        return output.absolute()

    def _merge(
        self, candidates: list[CandidateFile], output_path: Path, summary: PackageSummary
    ) -> list[CandidateFile]:
        """
        Deduplicate in order, first occurrence winning. The same file reached
        twice is dropped silently; a different file reusing a label is skipped
        with a warning, since the artifact could not tell the two apart.
        """
        output_identity = output_path.resolve()
        seen_files: set[Path] = set()
        seen_labels: set[str] = set()
        selection: list[CandidateFile] = []

        for candidate in candidates:
            identity = candidate.path.resolve()
            if identity in seen_files:
                continue
            if identity == output_identity:
                summary.skipped.append(
                    SkippedFile(candidate.relative_path, SkipReason.output_file, "the output file itself")
                )
                seen_files.add(identity)
                continue
            try:
                check_label(candidate.relative_path)
            except MarkerCollisionError as e:
                LOGGER.warning(str(e))
                summary.warnings.append(str(e))
                summary.skipped.append(
                    SkippedFile(candidate.relative_path, SkipReason.marker_collision, str(e))
                )
                seen_files.add(identity)
                continue
            if candidate.relative_path in seen_labels:
                message = (
                    f"Skipping {candidate.path}: relative path {candidate.relative_path} "
                    "is already used by another file"
                )
                LOGGER.warning(message)
                summary.warnings.append(message)
                summary.skipped.append(
                    SkippedFile(candidate.relative_path, SkipReason.duplicate_path, str(candidate.path))
                )
                continue
            seen_files.add(identity)
            seen_labels.add(candidate.relative_path)
            selection.append(candidate)

        return selection

    def _read_text(self, candidate: CandidateFile, summary: PackageSummary) -> str | None:
        """Read a file as UTF-8 text, or record why it was skipped and return `None`."""
        label = candidate.relative_path
        try:
            data = candidate.path.read_bytes()
        except OSError as e:
            message = f"Cannot read {label}: {e}"
            LOGGER.warning(message)
            summary.warnings.append(message)
            summary.skipped.append(SkippedFile(label, SkipReason.unreadable, str(e)))
            return None

        if b"\x00" in data:
            summary.skipped.append(SkippedFile(label, SkipReason.binary, "contains NUL bytes"))
            return None
        try:
            content = data.decode("utf-8")
        except UnicodeDecodeError:
            summary.skipped.append(SkippedFile(label, SkipReason.binary, "not valid UTF-8"))
            return None

        try:
            check_frameable(label, content)
        except MarkerCollisionError as e:
            LOGGER.warning(str(e))
            summary.warnings.append(str(e))
            summary.skipped.append(SkippedFile(label, SkipReason.marker_collision, str(e)))
            return None

        return content


def package(config: PackagerConfig, *, search_root: str | Path | None = None) -> PackageSummary:
    """
    Package files per `config` into one artifact. Extra files are resolved
    against `search_root` (the working directory by default).
    """
    return Packager(config, search_root=search_root).run()
