"""
Artifact framing: each packaged file becomes a marker line naming its relative
path, followed by the file's content unchanged and one extra newline.

The marker only ever appears at the start of a line, so an artifact can be
split back into `(relative_path, content)` pairs exactly.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import TextIO

from code_packager.errors import MarkerCollisionError

MARKER = "@@@@ code-packager file: "

# `^` under MULTILINE matches only after `\n`, which is the only line break
# the framing writes.
_MARKER_LINE = re.compile(r"^" + re.escape(MARKER) + r"(?P<path>[^\n]*)\n", re.MULTILINE)
_MARKER_AT_LINE_START = re.compile(r"^" + re.escape(MARKER), re.MULTILINE)


def check_label(relative_path: str) -> None:
    """
    Raise `MarkerCollisionError` if a path cannot go on a marker line: it has a
    line break, or it came from a filename that is not valid UTF-8.
    """
    if "\n" in relative_path or "\r" in relative_path:
        raise MarkerCollisionError(f"Path contains a line break: {relative_path!r}")
    try:
        relative_path.encode("utf-8")
    except UnicodeEncodeError as e:
        raise MarkerCollisionError(f"Path is not valid UTF-8: {relative_path!r}") from e


def check_frameable(relative_path: str, content: str) -> None:
    """Raise `MarkerCollisionError` if the block could not be parsed back."""
    check_label(relative_path)
    if _MARKER_AT_LINE_START.search(content):
        raise MarkerCollisionError(f"Content of {relative_path} contains the file marker")


def serialize(relative_path: str, content: str) -> str:
    check_frameable(relative_path, content)
    return f"{MARKER}{relative_path}\n{content}\n"


def serialize_all(blocks: Iterable[tuple[str, str]]) -> str:
    return "".join(serialize(path, content) for path, content in blocks)


def write_block(stream: TextIO, relative_path: str, content: str) -> None:
    stream.write(serialize(relative_path, content))


def split_into_blocks(text: str) -> list[tuple[str, str]]:
    """
    Parse an artifact back into `(relative_path, content)` pairs.

    Raises `ValueError` if the text does not start with a marker line (an empty
    artifact parses to an empty list).
    """
    if not text:
        return []

    markers = list(_MARKER_LINE.finditer(text))
    if not markers or markers[0].start() != 0:
        raise ValueError("Artifact does not start with a file marker")

    blocks: list[tuple[str, str]] = []
    for i, m in enumerate(markers):
        end = markers[i + 1].start() if i + 1 < len(markers) else len(text)
        body = text[m.end() : end]
        if not body.endswith("\n"):
            raise ValueError(f"Block for {m.group('path')} is not newline-terminated")
        blocks.append((m.group("path"), body[:-1]))
    return blocks
