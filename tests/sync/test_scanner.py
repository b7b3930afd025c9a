"""Tests for the metadata scanner."""

from __future__ import annotations

import hashlib
import os
from collections.abc import Callable
from pathlib import Path

import pytest

from msync.core.config import SyncPolicy
from msync.core.types import BrokenLinkPolicy, CompareMethod
from msync.sync.scanner import Scanner
from msync.sync.stats import RunStatistics
from msync.sync.types import SourceError


class TestScanner:
    """Tests for Scanner class."""

    def test_scan_lists_files_and_directories(self, source_tree: Path) -> None:
        """Should list every entry with slash-separated relative paths."""
        entries = Scanner(SyncPolicy()).scan(source_tree)
        assert set(entries) == {
            "a.txt",
            "b.bin",
            "sub",
            "sub/c.txt",
            "sub/deep",
            "sub/deep/d.txt",
            "empty",
        }
        assert entries["sub"].is_dir
        assert entries["empty"].is_dir
        assert entries["sub/deep/d.txt"].is_file

    def test_root_is_excluded(self, source_tree: Path) -> None:
        """Should not include the root itself."""
        entries = Scanner(SyncPolicy()).scan(source_tree)
        assert "" not in entries
        assert "." not in entries

    def test_metadata(self, source_tree: Path) -> None:
        """Should record size, mtime and mode of files; size 0 for directories."""
        entries = Scanner(SyncPolicy()).scan(source_tree)
        st = (source_tree / "b.bin").stat()
        entry = entries["b.bin"]
        assert entry.size == 300
        assert entry.mtime_ns == st.st_mtime_ns
        assert entry.mode == st.st_mode & 0o7777
        assert entries["sub"].size == 0

    def test_result_is_read_only(self, source_tree: Path) -> None:
        """Should return a mapping that cannot be modified."""
        entries = Scanner(SyncPolicy()).scan(source_tree)
        with pytest.raises(TypeError):
            entries["new"] = entries["a.txt"]  # type: ignore[index]

    def test_non_recursive(self, source_tree: Path) -> None:
        """Should only list top-level entries when recursion is off."""
        entries = Scanner(SyncPolicy(recursive=False)).scan(source_tree)
        assert set(entries) == {"a.txt", "b.bin", "sub", "empty"}

    def test_no_checksums_by_default(self, source_tree: Path) -> None:
        """Should not hash files under the mtime method."""
        entries = Scanner(SyncPolicy()).scan(source_tree)
        assert entries["a.txt"].checksum is None

    @pytest.mark.parametrize(
        "policy",
        [SyncPolicy(method=CompareMethod.CHECKSUM), SyncPolicy(checksum=True)],
    )
    def test_checksums_when_requested(self, source_tree: Path, policy: SyncPolicy) -> None:
        """Should hash regular files for the checksum method or flag."""
        entries = Scanner(policy).scan(source_tree)
        assert entries["a.txt"].checksum == hashlib.sha256(b"alpha").hexdigest()
        assert entries["sub"].checksum is None

    def test_counts_checked_entries(self, source_tree: Path) -> None:
        """Should count every scanned entry."""
        stats = RunStatistics()
        Scanner(SyncPolicy(), stats).scan(source_tree)
        assert stats.snapshot().files_checked == 7

    def test_missing_root_raises(self, tmp_path: Path) -> None:
        """Should raise SourceError when the root does not exist."""
        with pytest.raises(SourceError):
            Scanner(SyncPolicy()).scan(tmp_path / "missing")

    def test_file_root_raises(self, tmp_path: Path) -> None:
        """Should raise SourceError when the root is a file."""
        path = tmp_path / "file.txt"
        path.write_text("x")
        with pytest.raises(SourceError):
            Scanner(SyncPolicy()).scan(path)

    def test_empty_root(self, tmp_path: Path) -> None:
        """Should return an empty mapping for an empty directory."""
        assert len(Scanner(SyncPolicy()).scan(tmp_path)) == 0


class TestScannerSymlinks:
    """Tests for symlink handling while scanning."""

    def test_file_link_is_followed(self, tmp_path: Path, make_tree: Callable[..., Path]) -> None:
        """Should record a link to a file as a regular file."""
        root = make_tree(tmp_path / "src", {"target.txt": "content"})
        os.symlink("target.txt", root / "link.txt")
        entries = Scanner(SyncPolicy()).scan(root)
        assert entries["link.txt"].is_file
        assert entries["link.txt"].is_symlink is False
        assert entries["link.txt"].size == len("content")

    def test_directory_link_not_descended(
        self, tmp_path: Path, make_tree: Callable[..., Path]
    ) -> None:
        """Should record a link to a directory as a directory without descending."""
        root = make_tree(tmp_path / "src", {"real/inner.txt": "x"})
        os.symlink("real", root / "alias")
        entries = Scanner(SyncPolicy()).scan(root)
        assert entries["alias"].is_dir
        assert "alias/inner.txt" not in entries
        assert "real/inner.txt" in entries

    def test_broken_link_warn(self, tmp_path: Path) -> None:
        """Should keep a dangling link and record a warning."""
        root = tmp_path / "src"
        root.mkdir()
        os.symlink("nowhere", root / "dangling")
        stats = RunStatistics()
        entries = Scanner(SyncPolicy(), stats).scan(root)
        assert entries["dangling"].is_symlink
        assert entries["dangling"].link_target == "nowhere"
        assert any("broken symlink" in error for error in stats.snapshot().errors)

    def test_broken_link_skip(self, tmp_path: Path) -> None:
        """Should silently leave a dangling link out."""
        root = tmp_path / "src"
        root.mkdir()
        os.symlink("nowhere", root / "dangling")
        stats = RunStatistics()
        entries = Scanner(SyncPolicy(broken_links=BrokenLinkPolicy.SKIP), stats).scan(root)
        assert "dangling" not in entries
        assert stats.snapshot().errors == ()


@pytest.mark.skipif(os.geteuid() == 0, reason="root ignores permission bits")
class TestScannerPermissions:
    """Tests for unreadable entries."""

    def test_unreadable_file_keeps_entry_without_checksum(self, tmp_path: Path) -> None:
        """Should keep the entry and record a soft error when hashing fails."""
        root = tmp_path / "src"
        root.mkdir()
        secret = root / "secret.txt"
        secret.write_text("hidden")
        secret.chmod(0o000)
        try:
            stats = RunStatistics()
            entries = Scanner(SyncPolicy(checksum=True), stats).scan(root)
        finally:
            secret.chmod(0o644)
        assert entries["secret.txt"].checksum is None
        assert any("checksum" in error for error in stats.snapshot().errors)

    def test_unreadable_directory_is_soft_error(self, tmp_path: Path) -> None:
        """Should record an unlistable subdirectory and keep scanning."""
        root = tmp_path / "src"
        (root / "locked").mkdir(parents=True)
        (root / "locked" / "x.txt").write_text("x")
        (root / "ok.txt").write_text("ok")
        (root / "locked").chmod(0o000)
        try:
            stats = RunStatistics()
            entries = Scanner(SyncPolicy(), stats).scan(root)
        finally:
            (root / "locked").chmod(0o755)
        assert "ok.txt" in entries
        assert "locked/x.txt" not in entries
        assert stats.snapshot().has_errors
