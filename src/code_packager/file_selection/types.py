"""Value types shared by the walker, the extra-file resolver and the packager."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


@dataclass(frozen=True)
class CandidateFile:
    """
    A file found during selection. `path` is absolute; `relative_path` is the
    `/`-separated label written into the artifact.
    """

    path: Path
    relative_path: str


class SkipReason(str, Enum):
    """Why a candidate was left out of the artifact."""

    binary = "binary"
    unreadable = "unreadable"
    output_file = "output-file"
    ignored = "ignored"
    symlinked_dir = "symlinked-dir"
    not_regular = "not-regular"
    duplicate_path = "duplicate-path"
    marker_collision = "marker-collision"


@dataclass(frozen=True)
class SkippedFile:
    relative_path: str
    reason: SkipReason
    detail: str = ""
