"""Sync orchestrator.

This module provides:
- Syncer: Top-level entry point for one source -> destination sync
- sync_paths: Convenience wrapper around Syncer

Flow (directory -> directory):
    Scanner (source) → Scanner (dest, or empty map) → WorkerPool
    → DeletionReconciler (if delete) → report

When either end is an archive, the ArchiveDispatcher takes over and calls
back into the directory flow on extracted trees. Every call gets its own
RunStatistics; the returned snapshot is the only state that outlives it.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

from msync.archive.dispatcher import ArchiveDispatcher
from msync.archive.paths import ArchiveEndpoint, DirectoryEndpoint, resolve_endpoint
from msync.core.config import ArchiveOptions, SyncPolicy
from msync.sync.reconciler import DeletionReconciler
from msync.sync.report import print_summary
from msync.sync.scanner import Scanner
from msync.sync.stats import RunStatistics, StatsSnapshot
from msync.sync.types import ArchiveError, DestinationError, PathMap, SourceError
from msync.sync.workers.pool import WorkerPool

if TYPE_CHECKING:
    from msync.archive.codec import ArchiveEntry
    from msync.archive.crypto import CryptoService

logger = logging.getLogger(__name__)


class Syncer:
    """Makes a destination match a source under one SyncPolicy.

    Only conditions that make the whole run meaningless raise (see
    msync.sync.types.SyncError); per-entry failures are collected in the
    returned snapshot's errors and the run carries on.

    Usage:
        syncer = Syncer(SyncPolicy(delete=True, threads=8))
        snapshot = syncer.sync("/data/photos", "/backup/photos")
        if snapshot.has_errors:
            ...
    """

    def __init__(
        self,
        policy: SyncPolicy | None = None,
        archive_options: ArchiveOptions | None = None,
        crypto: CryptoService | None = None,
    ) -> None:
        """Initialize the syncer.

        Args:
            policy: Comparison method and execution flags.
            archive_options: Explicit options for archive endpoints; merged
                with what each archive's file name implies.
            crypto: Encryption/signing service for archives (gpg if None).
        """
        self._policy = policy or SyncPolicy()
        self._archive_options = archive_options or ArchiveOptions()
        self._crypto = crypto

    @property
    def policy(self) -> SyncPolicy:
        return self._policy

    def sync(self, source: Path | str, dest: Path | str) -> StatsSnapshot:
        """Run one sync.

        Args:
            source: Source directory or archive.
            dest: Destination directory or archive.

        Returns:
            Final statistics of the run.

        Raises:
            SourceError: The source is missing or unreadable.
            DestinationError: The destination cannot be created or scanned.
            ArchiveError: An archive cannot be read or written.
            CryptoError: Decryption, signing or signature verification failed.
        """
        stats = RunStatistics()
        started = time.monotonic()
        policy = self._policy

        logger.info(f"Starting sync from {source} to {dest}")
        logger.info(
            f"Method: {policy.method.value}, Threads: {policy.threads}, DryRun: {policy.dry_run}"
        )

        source_endpoint = resolve_endpoint(source, self._archive_options)
        dest_endpoint = resolve_endpoint(dest, self._archive_options)

        if isinstance(source_endpoint, DirectoryEndpoint) and isinstance(
            dest_endpoint, DirectoryEndpoint
        ):
            self._sync_directories(source_endpoint.path, dest_endpoint.path, stats)
        else:
            self._dispatcher(stats).dispatch(source_endpoint, dest_endpoint)

        snapshot = stats.snapshot()
        elapsed = time.monotonic() - started
        logger.info(f"Sync finished in {elapsed:.2f}s with {len(snapshot.errors)} errors")

        if policy.verbose or policy.dry_run:
            print_summary(snapshot, elapsed, policy.dry_run)
        return snapshot

    def list_archive(self, archive: Path | str) -> list[ArchiveEntry]:
        """List the members of an archive.

        Raises:
            ArchiveError: If the path is not an archive or cannot be read.
            SourceError: If the archive does not exist.
            CryptoError: If decryption or signature verification fails.
        """
        endpoint = resolve_endpoint(archive, self._archive_options)
        if not isinstance(endpoint, ArchiveEndpoint):
            raise ArchiveError(
                f"Not an archive (expected .tar, .tar.gz or .tgz, optionally .gpg): {archive}"
            )
        return self._dispatcher(RunStatistics()).list_entries(endpoint)

    def _dispatcher(self, stats: RunStatistics) -> ArchiveDispatcher:
        return ArchiveDispatcher(
            self._policy,
            stats,
            directory_sync=lambda src, dst: self._sync_directories(src, dst, stats),
            crypto=self._crypto,
        )

    def _sync_directories(self, source: Path, dest: Path, stats: RunStatistics) -> None:
        """Directory flow: scan both trees, copy, then delete extras."""
        source_map = Scanner(self._policy, stats).scan(source)
        dest_map = self._prepare_destination(dest, stats)

        pool = WorkerPool(source, dest, self._policy, stats)
        pool.run(source_map, dest_map)

        if self._policy.delete:
            DeletionReconciler(self._policy, stats).reconcile(dest, source_map, dest_map)

    def _prepare_destination(self, dest: Path, stats: RunStatistics) -> PathMap:
        """Scan the destination, or create it and start from an empty map."""
        if dest.is_symlink() or dest.exists():
            if not dest.is_dir():
                raise DestinationError(f"Destination is not a directory: {dest}")
            try:
                return Scanner(self._policy, stats).scan(dest)
            except SourceError as e:
                raise DestinationError(str(e)) from e

        if not self._policy.dry_run:
            try:
                dest.mkdir(parents=True)
            except OSError as e:
                raise DestinationError(f"Cannot create destination {dest}: {e}") from e
            logger.info(f"Created destination directory: {dest}")
        return MappingProxyType({})


def sync_paths(
    source: Path | str,
    dest: Path | str,
    policy: SyncPolicy | None = None,
    archive_options: ArchiveOptions | None = None,
    crypto: CryptoService | None = None,
) -> StatsSnapshot:
    """Sync source into dest with a one-off Syncer.

    Args:
        source: Source directory or archive.
        dest: Destination directory or archive.
        policy: Sync policy (defaults to SyncPolicy()).
        archive_options: Explicit archive options.
        crypto: Encryption/signing service for archives.

    Returns:
        Final statistics of the run.
    """
    return Syncer(policy, archive_options, crypto).sync(source, dest)
