"""Tests for core configuration classes."""

from __future__ import annotations

import dataclasses

import pytest

from msync.core.config import DEFAULT_THREADS, ArchiveOptions, SyncPolicy
from msync.core.types import BrokenLinkPolicy, CompareMethod


class TestSyncPolicy:
    """Tests for SyncPolicy class."""

    def test_defaults(self) -> None:
        """Should default to mtime comparison, recursive, no delete."""
        policy = SyncPolicy()
        assert policy.method == CompareMethod.MTIME
        assert policy.recursive is True
        assert policy.delete is False
        assert policy.dry_run is False
        assert policy.threads == DEFAULT_THREADS
        assert policy.broken_links == BrokenLinkPolicy.WARN

    def test_string_enums_are_normalized(self) -> None:
        """Should accept enum values given as strings."""
        policy = SyncPolicy(method="size", broken_links="skip")
        assert policy.method is CompareMethod.SIZE
        assert policy.broken_links is BrokenLinkPolicy.SKIP

    def test_unknown_method_rejected(self) -> None:
        """Should reject an unknown comparison method."""
        with pytest.raises(ValueError):
            SyncPolicy(method="fuzzy")

    @pytest.mark.parametrize("threads", [0, -3])
    def test_threads_must_be_positive(self, threads: int) -> None:
        """Should reject a thread count below one."""
        with pytest.raises(ValueError, match="threads"):
            SyncPolicy(threads=threads)

    def test_frozen(self) -> None:
        """Should not allow mutation after creation."""
        policy = SyncPolicy()
        with pytest.raises(dataclasses.FrozenInstanceError):
            policy.delete = True  # type: ignore[misc]

    def test_needs_checksums(self) -> None:
        """Should need digests for the checksum method or the checksum flag."""
        assert SyncPolicy().needs_checksums is False
        assert SyncPolicy(method=CompareMethod.CHECKSUM).needs_checksums is True
        assert SyncPolicy(checksum=True).needs_checksums is True

    def test_with_changes(self) -> None:
        """Should return a modified copy and leave the original alone."""
        policy = SyncPolicy(threads=2)
        preview = policy.with_changes(dry_run=True)
        assert preview.dry_run is True
        assert preview.threads == 2
        assert policy.dry_run is False


class TestArchiveOptions:
    """Tests for ArchiveOptions class."""

    def test_needs_crypto(self) -> None:
        """Should need crypto when encrypting or signing."""
        assert ArchiveOptions().needs_crypto is False
        assert ArchiveOptions(compress=True).needs_crypto is False
        assert ArchiveOptions(encrypt=True).needs_crypto is True
        assert ArchiveOptions(sign=True).needs_crypto is True

    def test_merge_never_drops_implied_flags(self) -> None:
        """Should keep suffix-implied compression and encryption."""
        implied = ArchiveOptions(compress=True, encrypt=True)
        merged = implied.merged_with(ArchiveOptions())
        assert merged.compress is True
        assert merged.encrypt is True

    def test_merge_adds_explicit_flags(self) -> None:
        """Should add flags requested explicitly."""
        merged = ArchiveOptions().merged_with(ArchiveOptions(compress=True, sign=True))
        assert merged.compress is True
        assert merged.sign is True
        assert merged.encrypt is False

    def test_merge_prefers_explicit_keys(self) -> None:
        """Should take key id and keyring from the explicit side when set."""
        implied = ArchiveOptions(key_id="old", keyring="/old")
        merged = implied.merged_with(ArchiveOptions(key_id="alice@example.com"))
        assert merged.key_id == "alice@example.com"
        assert merged.keyring == "/old"
