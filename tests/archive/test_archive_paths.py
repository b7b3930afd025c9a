"""Tests for archive path classification."""

from __future__ import annotations

from pathlib import Path

import pytest

from msync.archive.paths import (
    ArchiveEndpoint,
    DirectoryEndpoint,
    archive_options_from_path,
    is_archive_path,
    resolve_endpoint,
    signature_path,
)
from msync.core.config import ArchiveOptions


class TestIsArchivePath:
    """Tests for is_archive_path."""

    @pytest.mark.parametrize(
        "name",
        ["a.tar", "a.tar.gz", "a.tgz", "a.tar.gpg", "a.tar.gz.gpg", "a.tgz.gpg", "A.TAR.GZ"],
    )
    def test_archive_names(self, name: str) -> None:
        """Should recognize tar suffixes, optionally followed by .gpg."""
        assert is_archive_path(name)

    @pytest.mark.parametrize("name", ["photos", "a.gz", "a.gpg", "a.zip", "tar", "a.tar.bak"])
    def test_other_names(self, name: str) -> None:
        """Should treat everything else as a directory."""
        assert not is_archive_path(name)


class TestArchiveOptionsFromPath:
    """Tests for archive_options_from_path."""

    @pytest.mark.parametrize(
        ("name", "compress", "encrypt"),
        [
            ("a.tar", False, False),
            ("a.tar.gz", True, False),
            ("a.tgz", True, False),
            ("a.tar.gpg", False, True),
            ("a.tar.gz.gpg", True, True),
        ],
    )
    def test_implied_options(self, name: str, compress: bool, encrypt: bool) -> None:
        """Should derive compression and encryption from the suffix."""
        options = archive_options_from_path(name)
        assert options.compress is compress
        assert options.encrypt is encrypt

    def test_sign_never_implied(self) -> None:
        """Should never imply signing from a name."""
        assert archive_options_from_path("a.tar.gz.gpg").sign is False


class TestResolveEndpoint:
    """Tests for resolve_endpoint."""

    def test_directory(self) -> None:
        """Should return a directory endpoint for plain paths."""
        assert resolve_endpoint("/data/photos") == DirectoryEndpoint(Path("/data/photos"))

    def test_archive_merges_explicit_options(self) -> None:
        """Should merge implied and explicit options."""
        endpoint = resolve_endpoint("backup.tar", ArchiveOptions(compress=True, sign=True))
        assert isinstance(endpoint, ArchiveEndpoint)
        assert endpoint.options.compress is True
        assert endpoint.options.sign is True

    def test_explicit_cannot_drop_implied(self) -> None:
        """Should keep encryption implied by .gpg."""
        endpoint = resolve_endpoint("backup.tar.gpg", ArchiveOptions(encrypt=False))
        assert isinstance(endpoint, ArchiveEndpoint)
        assert endpoint.options.encrypt is True

    def test_signature_path(self) -> None:
        """Should place the signature beside the archive."""
        endpoint = resolve_endpoint("/tmp/backup.tar.gz")
        assert isinstance(endpoint, ArchiveEndpoint)
        assert endpoint.signature == Path("/tmp/backup.tar.gz.sig")
        assert signature_path(Path("x.tar")) == Path("x.tar.sig")
