"""Filesystem helpers.

``ScopedTempDirs`` owns every directory that holds credential material for a
run (notary API key, feed signing key, rendered entitlements and export
options). Directories are created private to the user and removed when the
scope exits, whatever the outcome.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from types import TracebackType

__all__ = ["ScopedTempDirs", "atomic_write_text", "replace_tree", "write_private_text"]


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write text to path atomically using temp file + replace."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=str(path.parent),
    )
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def write_private_text(path: Path, content: str) -> Path:
    """Write a file readable only by the current user (0600)."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(content)
    return path


def replace_tree(src: Path, dst: Path) -> None:
    """Copy ``src`` to ``dst``, removing whatever was at ``dst`` first."""
    if dst.is_dir() and not dst.is_symlink():
        shutil.rmtree(dst)
    else:
        dst.unlink(missing_ok=True)
    dst.parent.mkdir(parents=True, exist_ok=True)
    if src.is_dir():
        shutil.copytree(src, dst, symlinks=True)
    else:
        shutil.copy2(src, dst)


class ScopedTempDirs:
    """Uniquely named private directories removed when the scope exits.

    Usage:
        with ScopedTempDirs(build_dir) as scope:
            key = scope.write_secret("notary-", "AuthKey.p8", private_key)
            ...
        # every directory made by scope is gone here
    """

    def __init__(self, parent: Path | None = None) -> None:
        # None means the system temp directory
        self._parent = parent
        self._dirs: list[Path] = []

    @property
    def dirs(self) -> tuple[Path, ...]:
        return tuple(self._dirs)

    def make(self, prefix: str) -> Path:
        """Create a new private directory (0700) owned by this scope."""
        if self._parent is not None:
            self._parent.mkdir(parents=True, exist_ok=True)
        path = Path(
            tempfile.mkdtemp(
                prefix=prefix,
                dir=str(self._parent) if self._parent is not None else None,
            )
        )
        self._dirs.append(path)
        return path

    def write_secret(self, prefix: str, filename: str, content: str) -> Path:
        """Write ``content`` to ``<new dir>/<filename>`` with mode 0600."""
        return write_private_text(self.make(prefix) / filename, content)

    def cleanup(self) -> None:
        while self._dirs:
            shutil.rmtree(self._dirs.pop(), ignore_errors=True)

    def __enter__(self) -> ScopedTempDirs:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cleanup()
