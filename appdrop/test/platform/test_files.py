"""Tests for appdrop.platform.files module."""

from __future__ import annotations

import stat
from pathlib import Path

import pytest

from appdrop.platform.files import (
    ScopedTempDirs,
    atomic_write_text,
    replace_tree,
    write_private_text,
)


def _mode(path: Path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


def test_atomic_write_text_creates_parents(tmp_path: Path) -> None:
    target = tmp_path / "a" / "b" / "file.txt"
    atomic_write_text(target, "hello")
    assert target.read_text(encoding="utf-8") == "hello"
    assert [p.name for p in target.parent.iterdir()] == ["file.txt"]


def test_atomic_write_text_overwrites(tmp_path: Path) -> None:
    target = tmp_path / "file.txt"
    target.write_text("old", encoding="utf-8")
    atomic_write_text(target, "new")
    assert target.read_text(encoding="utf-8") == "new"


def test_write_private_text_mode(tmp_path: Path) -> None:
    path = write_private_text(tmp_path / "key.p8", "secret")
    assert path.read_text(encoding="utf-8") == "secret"
    assert _mode(path) == 0o600


def test_replace_tree_overwrites_instead_of_merging(tmp_path: Path) -> None:
    src = tmp_path / "export" / "App.app"
    (src / "Contents").mkdir(parents=True)
    (src / "Contents" / "Info.plist").write_text("new", encoding="utf-8")

    dst = tmp_path / "build" / "App.app"
    (dst / "Contents").mkdir(parents=True)
    (dst / "Contents" / "Info.plist").write_text("old", encoding="utf-8")
    (dst / "Contents" / "stale.txt").write_text("stale", encoding="utf-8")

    replace_tree(src, dst)

    assert (dst / "Contents" / "Info.plist").read_text(encoding="utf-8") == "new"
    assert not (dst / "Contents" / "stale.txt").exists()


class TestScopedTempDirs:
    def test_dirs_are_private_and_removed(self, tmp_path: Path) -> None:
        with ScopedTempDirs(tmp_path) as scope:
            first = scope.make("notary-")
            key = scope.write_secret("sparkle-", "key", "k")
            assert first.parent == tmp_path
            assert first.name.startswith("notary-")
            assert _mode(first) == 0o700
            assert _mode(key) == 0o600
            assert len(scope.dirs) == 2

        assert list(tmp_path.iterdir()) == []

    def test_removed_when_body_raises(self, tmp_path: Path) -> None:
        with pytest.raises(RuntimeError):
            with ScopedTempDirs(tmp_path) as scope:
                scope.write_secret("notary-", "AuthKey.p8", "secret")
                raise RuntimeError("stage failed")

        assert list(tmp_path.iterdir()) == []

    def test_names_are_unique(self, tmp_path: Path) -> None:
        with ScopedTempDirs(tmp_path) as scope:
            assert scope.make("x-") != scope.make("x-")

    def test_creates_parent(self, tmp_path: Path) -> None:
        parent = tmp_path / "build"
        with ScopedTempDirs(parent) as scope:
            scope.make("x-")
            assert parent.is_dir()
        assert parent.is_dir()
        assert list(parent.iterdir()) == []
