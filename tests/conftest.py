"""Shared fixtures for the msync test suite."""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

import pytest

from msync.archive.crypto import PassphraseCryptoService

# Fixed timestamp (whole seconds) so archive round trips compare exactly
BASE_MTIME = 1_600_000_000

TreeLayout = dict[str, "str | bytes | None"]


def _write_tree(root: Path, layout: TreeLayout, mtime: int | None = BASE_MTIME) -> Path:
    """Create files (str/bytes values) and directories (None values) under root."""
    root.mkdir(parents=True, exist_ok=True)
    for rel_path, content in layout.items():
        path = root / rel_path
        if content is None:
            path.mkdir(parents=True, exist_ok=True)
            continue
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            content = content.encode()
        path.write_bytes(content)
        if mtime is not None:
            os.utime(path, (mtime, mtime))
    return root


def _snapshot(root: Path) -> dict[str, tuple[str, bytes | None, int]]:
    """Entry set of a tree: path -> (kind, content, mtime_ns)."""
    result: dict[str, tuple[str, bytes | None, int]] = {}
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root).as_posix()
        st = path.lstat()
        if path.is_symlink():
            result[rel] = ("link", os.readlink(path).encode(), st.st_mtime_ns)
        elif path.is_dir():
            result[rel] = ("dir", None, 0)
        else:
            result[rel] = ("file", path.read_bytes(), st.st_mtime_ns)
    return result


@pytest.fixture
def make_tree() -> Callable[..., Path]:
    """Return a helper that builds a directory tree from a dict."""
    return _write_tree


@pytest.fixture
def tree_state() -> Callable[[Path], dict[str, tuple[str, bytes | None, int]]]:
    """Return a helper that captures paths, contents and mtimes of a tree."""
    return _snapshot


@pytest.fixture
def source_tree(tmp_path: Path) -> Path:
    """A small source tree with nested files and an empty directory."""
    return _write_tree(
        tmp_path / "source",
        {
            "a.txt": "alpha",
            "b.bin": b"\x00\x01\x02" * 100,
            "sub/c.txt": "charlie",
            "sub/deep/d.txt": "delta",
            "empty": None,
        },
    )


@pytest.fixture
def fast_crypto() -> PassphraseCryptoService:
    """Passphrase crypto with minimal Argon2 cost, for fast tests."""
    return PassphraseCryptoService("correct horse", time_cost=1, memory_cost=64)
