"""Tests for the directory walker."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from code_packager.file_selection import (
    DirectoryWalker,
    SkipReason,
    compile_patterns,
)
from code_packager.file_selection.walker import walk


def _make_tree(root: Path) -> None:
    """Create the src/target tree used across several tests."""
    (root / "src" / "sub").mkdir(parents=True)
    (root / "src" / "a.rs").write_text("fn a() {}\n")
    (root / "src" / "sub" / "b.rs").write_text("fn b() {}\n")
    (root / "target" / "debug").mkdir(parents=True)
    (root / "target" / "debug" / "x.o").write_bytes(b"\x7fELF")


def _labels(files) -> list[str]:
    return [f.relative_path for f in files]


def test_walk_ignores_target_contents(tmp_path: Path):
    _make_tree(tmp_path)
    result = walk(tmp_path, compile_patterns(["target/*"]))
    assert _labels(result) == ["src/a.rs", "src/sub/b.rs"]


def test_walk_without_ignores_returns_everything(tmp_path: Path):
    _make_tree(tmp_path)
    result = walk(tmp_path)
    assert _labels(result) == ["src/a.rs", "src/sub/b.rs", "target/debug/x.o"]


def test_walk_paths_are_absolute(tmp_path: Path):
    _make_tree(tmp_path)
    result = walk(tmp_path)
    for f in result:
        assert f.path.is_absolute()
        assert f.path.is_file()


def test_walk_is_preorder_and_sorted_by_name(tmp_path: Path):
    (tmp_path / "b.txt").write_text("b")
    (tmp_path / "a").mkdir()
    (tmp_path / "a" / "z.txt").write_text("z")
    (tmp_path / "c.txt").write_text("c")
    (tmp_path / "B.txt").write_text("B")
    result = walk(tmp_path)
    assert _labels(result) == ["B.txt", "a/z.txt", "b.txt", "c.txt"]


def test_walk_is_deterministic(tmp_path: Path):
    _make_tree(tmp_path)
    for name in ["zeta.py", "alpha.py", "mid.py"]:
        (tmp_path / "src" / name).write_text("")
    ignore = compile_patterns(["*.o"])
    assert _labels(walk(tmp_path, ignore)) == _labels(walk(tmp_path, ignore))


def test_walk_basename_ignore_at_depth(tmp_path: Path):
    deep = tmp_path / "a" / "b"
    deep.mkdir(parents=True)
    (deep / "c.tmp").write_text("tmp")
    (deep / "c.txt").write_text("txt")
    (tmp_path / "top.tmp").write_text("tmp")
    result = walk(tmp_path, compile_patterns(["*.tmp"]))
    assert _labels(result) == ["a/b/c.txt"]


def test_ignored_directory_is_not_descended(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    vendor = tmp_path / "vendor" / "lib"
    vendor.mkdir(parents=True)
    (vendor / "keep_me_out.rs").write_text("// no pattern matches this file name")
    (tmp_path / "main.rs").write_text("fn main() {}")

    listed: list[str] = []
    real_scandir = os.scandir

    def recording_scandir(path):
        listed.append(Path(path).name)
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", recording_scandir)
    result = walk(tmp_path, compile_patterns(["vendor/"]))

    assert _labels(result) == ["main.rs"]
    assert "vendor" not in listed
    assert "lib" not in listed


def test_directory_only_pattern_keeps_same_named_file(tmp_path: Path):
    (tmp_path / "build").write_text("a file named build")
    sub = tmp_path / "sub" / "build"
    sub.mkdir(parents=True)
    (sub / "out.txt").write_text("out")
    result = walk(tmp_path, compile_patterns(["build/"]))
    assert _labels(result) == ["build"]


def test_walk_missing_root(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        walk(tmp_path / "nope")


def test_walk_root_is_file(tmp_path: Path):
    f = tmp_path / "file.txt"
    f.write_text("x")
    with pytest.raises(NotADirectoryError):
        walk(f)


def test_walk_prefix_and_max_depth(tmp_path: Path):
    _make_tree(tmp_path)
    walker = DirectoryWalker()
    result = walker.walk(tmp_path / "src", prefix="pkg", max_depth=1)
    assert _labels(result) == ["pkg/a.rs"]
    result = walker.walk(tmp_path / "src", prefix="pkg")
    assert _labels(result) == ["pkg/a.rs", "pkg/sub/b.rs"]


def test_ignore_checked_against_prefixed_path(tmp_path: Path):
    _make_tree(tmp_path)
    walker = DirectoryWalker(compile_patterns(["pkg/sub/"]))
    result = walker.walk(tmp_path / "src", prefix="pkg")
    assert _labels(result) == ["pkg/a.rs"]


def test_ignore_frames(tmp_path: Path):
    _make_tree(tmp_path)
    # Anchored at the frame, not at the walk root.
    walker = DirectoryWalker(compile_patterns(["src/sub/*"]), ignore_frames=[tmp_path])
    result = walker.walk(tmp_path / "src")
    assert _labels(result) == ["a.rs"]


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
def test_symlinked_directory_is_not_followed(tmp_path: Path):
    real = tmp_path / "real"
    real.mkdir()
    (real / "f.txt").write_text("f")
    (tmp_path / "link").symlink_to(real, target_is_directory=True)
    # A link back up the tree would cycle if followed.
    (real / "loop").symlink_to(tmp_path, target_is_directory=True)

    walker = DirectoryWalker()
    result = walker.walk(tmp_path)

    assert _labels(result) == ["real/f.txt"]
    skipped = {s.relative_path: s.reason for s in walker.skipped}
    assert skipped == {
        "link": SkipReason.symlinked_dir,
        "real/loop": SkipReason.symlinked_dir,
    }


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
def test_symlinked_file_is_included(tmp_path: Path):
    (tmp_path / "target.txt").write_text("content")
    (tmp_path / "alias.txt").symlink_to(tmp_path / "target.txt")
    result = walk(tmp_path)
    assert _labels(result) == ["alias.txt", "target.txt"]


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
def test_broken_symlink_is_skipped(tmp_path: Path):
    (tmp_path / "dangling").symlink_to(tmp_path / "missing")
    (tmp_path / "ok.txt").write_text("ok")
    walker = DirectoryWalker()
    result = walker.walk(tmp_path)
    assert _labels(result) == ["ok.txt"]
    assert [(s.relative_path, s.reason) for s in walker.skipped] == [
        ("dangling", SkipReason.not_regular)
    ]


def test_unlistable_subdirectory_is_a_warning(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    locked = tmp_path / "locked"
    locked.mkdir()
    (locked / "secret.txt").write_text("s")
    (tmp_path / "open.txt").write_text("o")

    real_scandir = os.scandir

    def failing_scandir(path):
        if Path(path).name == "locked":
            raise PermissionError(13, "Permission denied", str(path))
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", failing_scandir)
    walker = DirectoryWalker()
    result = walker.walk(tmp_path)

    assert _labels(result) == ["open.txt"]
    assert len(walker.warnings) == 1
    assert "locked" in walker.warnings[0]


def test_unlistable_root_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    def failing_scandir(path):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr(os, "scandir", failing_scandir)
    with pytest.raises(PermissionError):
        walk(tmp_path)
