"""Shared types and exceptions for sync operations.

This module provides:
- FileEntry: Metadata of one filesystem object under a sync root
- PathMap: Read-only mapping from relative path to FileEntry
- SyncError and subclasses: Fatal errors that abort a whole sync run
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

NS_PER_SECOND = 1_000_000_000


@dataclass(frozen=True)
class FileEntry:
    """Metadata about one file or directory, relative to a sync root.

    Attributes:
        path: Slash-separated path relative to the root.
        size: Size in bytes (0 for directories).
        mtime_ns: Modification time in nanoseconds since the epoch.
        is_dir: Whether the entry is a directory.
        checksum: Hex SHA-256 digest, or None when not computed.
        mode: POSIX permission bits (0 if unknown).
        is_symlink: Whether the entry is a symlink kept without following it.
        link_target: Target of the symlink when is_symlink is set.
    """

    path: str
    size: int
    mtime_ns: int
    is_dir: bool = False
    checksum: str | None = None
    mode: int = 0
    is_symlink: bool = False
    link_target: str | None = None

    @property
    def mtime(self) -> float:
        """Modification time in seconds since the epoch."""
        return self.mtime_ns / NS_PER_SECOND

    @property
    def is_file(self) -> bool:
        """Whether the entry is a regular file (or a kept symlink)."""
        return not self.is_dir


# Snapshot of one tree: relative path -> entry, never mutated after the scan.
PathMap = Mapping[str, FileEntry]


class SyncError(Exception):
    """Base exception for errors that make a whole sync run meaningless."""


class SourceError(SyncError):
    """The source root is missing or unreadable."""


class DestinationError(SyncError):
    """The destination root cannot be created or scanned."""


class ArchiveError(SyncError):
    """An archive could not be read, written or extracted."""


class CryptoError(SyncError):
    """Encryption, decryption or signing failed."""


class SignatureVerificationError(CryptoError):
    """A detached signature is present but does not validate."""
