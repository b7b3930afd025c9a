"""Run configuration for msync.

This module defines the immutable configuration objects shared by the sync
engine and the archive layer:
- SyncPolicy: comparison method and execution flags for one run
- ArchiveOptions: compression/encryption/signing settings for one archive path
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from msync.core.types import BrokenLinkPolicy, CompareMethod

DEFAULT_THREADS = 4


@dataclass(frozen=True)
class SyncPolicy:
    """Configuration for a single sync run.

    Attributes:
        method: Comparison method used to detect stale entries.
        checksum: Compute content digests even when the method is not CHECKSUM.
        recursive: Descend into subdirectories.
        delete: Remove destination entries that are absent from the source.
        dry_run: Compute and report planned operations without mutating anything.
        threads: Number of concurrent copy workers (at least 1).
        broken_links: Handling of symlinks with unreachable targets.
        verbose: Print a summary report after real runs.
    """

    method: CompareMethod = CompareMethod.MTIME
    checksum: bool = False
    recursive: bool = True
    delete: bool = False
    dry_run: bool = False
    threads: int = DEFAULT_THREADS
    broken_links: BrokenLinkPolicy = BrokenLinkPolicy.WARN
    verbose: bool = False

    def __post_init__(self) -> None:
        """Normalize enum fields given as strings and validate thread count."""
        if not isinstance(self.method, CompareMethod):
            object.__setattr__(self, "method", CompareMethod(self.method))
        if not isinstance(self.broken_links, BrokenLinkPolicy):
            object.__setattr__(self, "broken_links", BrokenLinkPolicy(self.broken_links))
        if self.threads < 1:
            raise ValueError(f"threads must be at least 1, got {self.threads}")

    @property
    def needs_checksums(self) -> bool:
        """Whether scans must compute content digests for regular files."""
        return self.method == CompareMethod.CHECKSUM or self.checksum

    def with_changes(self, **changes: Any) -> SyncPolicy:
        """Return a copy of this policy with some fields replaced."""
        return replace(self, **changes)


@dataclass(frozen=True)
class ArchiveOptions:
    """Compression, encryption and signing settings for an archive endpoint.

    Attributes:
        compress: Gzip-compress the tar stream.
        encrypt: Encrypt the (compressed) stream through the crypto service.
        sign: Produce a detached signature on create, verify it on extract.
        key_id: Key used as encryption recipient and signing identity.
        keyring: Keyring location handed to the crypto service.
    """

    compress: bool = False
    encrypt: bool = False
    sign: bool = False
    key_id: str | None = None
    keyring: str | None = None

    @property
    def needs_crypto(self) -> bool:
        """Whether any operation on this archive goes through the crypto service."""
        return self.encrypt or self.sign

    def merged_with(self, explicit: ArchiveOptions) -> ArchiveOptions:
        """Combine suffix-implied options with explicit configuration.

        Explicit configuration can add compression or encryption but never
        drop what the file name implies. Key id and keyring come from the
        explicit side when set.
        """
        return ArchiveOptions(
            compress=self.compress or explicit.compress,
            encrypt=self.encrypt or explicit.encrypt,
            sign=self.sign or explicit.sign,
            key_id=explicit.key_id or self.key_id,
            keyring=explicit.keyring or self.keyring,
        )
