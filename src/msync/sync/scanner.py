"""Metadata scanner for sync roots.

This module provides:
- Scanner: Walks a directory tree and builds a PathMap snapshot

Architecture:
    The scanner is the first stage of every sync run. It produces an
    immutable mapping of relative path -> FileEntry for one tree at one
    point in time. The comparator and the executor only ever read these
    snapshots; a new run rebuilds them from scratch.

    Flow: Scanner (source) + Scanner (dest) → Comparator → WorkerPool → Reconciler

Usage:
    stats = RunStatistics()
    scanner = Scanner(policy, stats)
    source_map = scanner.scan("/data/photos")
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

from msync.core.crypto import compute_file_hash
from msync.core.types import BrokenLinkPolicy
from msync.sync.stats import RunStatistics
from msync.sync.types import FileEntry, PathMap, SourceError

if TYPE_CHECKING:
    from msync.core.config import SyncPolicy

logger = logging.getLogger(__name__)


class Scanner:
    """Builds the path -> FileEntry snapshot of a directory tree.

    The root itself is excluded from the result. Per-entry problems
    (permission denied, vanished files, unreadable content) are recorded
    as soft errors and never abort the walk. Only an unreachable root
    raises.

    A Scanner keeps no state between calls, so two scans of different
    roots may run concurrently as long as the RunStatistics is shared
    (it is thread-safe).
    """

    def __init__(self, policy: SyncPolicy, stats: RunStatistics | None = None) -> None:
        """Initialize the scanner.

        Args:
            policy: Sync policy (recursion, checksum and symlink handling).
            stats: Statistics accumulator for checked counts and soft errors.
        """
        self._policy = policy
        self._stats = stats if stats is not None else RunStatistics()

    def scan(self, root: Path | str) -> PathMap:
        """Scan a directory tree.

        Args:
            root: Root directory of the tree.

        Returns:
            Read-only mapping of slash-separated relative path to FileEntry.

        Raises:
            SourceError: If the root does not exist, is not a directory or
                cannot be listed.
        """
        root_path = Path(root)
        if not root_path.is_dir():
            raise SourceError(f"Not a directory or not accessible: {root_path}")
        try:
            with os.scandir(root_path):
                pass
        except OSError as e:
            raise SourceError(f"Cannot read directory {root_path}: {e}") from e

        entries: dict[str, FileEntry] = {}

        for dir_str, dirnames, filenames in os.walk(root_path, onerror=self._on_walk_error):
            current = Path(dir_str)
            dirnames.sort()
            filenames.sort()

            descend: list[str] = []
            for name in dirnames:
                path = current / name
                entry = self._make_entry(root_path, path)
                if entry is None:
                    continue
                entries[entry.path] = entry
                if entry.is_dir and self._policy.recursive and not path.is_symlink():
                    descend.append(name)
                elif path.is_symlink():
                    logger.debug(f"Not descending into symlinked directory: {path}")
            # Prune in place so os.walk only visits the directories we keep
            dirnames[:] = descend

            for name in filenames:
                entry = self._make_entry(root_path, current / name)
                if entry is not None:
                    entries[entry.path] = entry

        logger.debug(f"Scanned {root_path}: {len(entries)} entries")
        return MappingProxyType(entries)

    def _on_walk_error(self, error: OSError) -> None:
        self._stats.add_error(f"Error accessing {error.filename}: {error.strerror or error}")

    def _make_entry(self, root: Path, path: Path) -> FileEntry | None:
        """Build the entry for one path, or None if it must be left out."""
        try:
            link_stat = os.lstat(path)
        except FileNotFoundError:
            logger.debug(f"Entry vanished during scan: {path}")
            return None
        except OSError as e:
            self._stats.add_error(f"Error accessing {path}: {e}")
            return None

        relative_path = path.relative_to(root).as_posix()

        if stat.S_ISLNK(link_stat.st_mode):
            try:
                st = os.stat(path)
            except OSError:
                return self._broken_link_entry(relative_path, path, link_stat)
        else:
            st = link_stat

        if stat.S_ISDIR(st.st_mode):
            entry = FileEntry(
                path=relative_path,
                size=0,
                mtime_ns=st.st_mtime_ns,
                is_dir=True,
                mode=stat.S_IMODE(st.st_mode),
            )
        elif stat.S_ISREG(st.st_mode):
            entry = FileEntry(
                path=relative_path,
                size=st.st_size,
                mtime_ns=st.st_mtime_ns,
                checksum=self._checksum(path),
                mode=stat.S_IMODE(st.st_mode),
            )
        else:
            logger.debug(f"Skipping special file: {path}")
            return None

        self._stats.record_checked()
        return entry

    def _checksum(self, path: Path) -> str | None:
        """Digest a regular file if the policy asks for it.

        An unreadable file keeps its entry without a digest, so comparison
        falls back to metadata instead of treating the file as absent.
        """
        if not self._policy.needs_checksums:
            return None
        try:
            return compute_file_hash(path)
        except OSError as e:
            self._stats.add_error(f"Failed to calculate checksum for {path}: {e}")
            return None

    def _broken_link_entry(
        self, relative_path: str, path: Path, link_stat: os.stat_result
    ) -> FileEntry | None:
        if self._policy.broken_links == BrokenLinkPolicy.SKIP:
            logger.debug(f"Skipping broken symlink: {path}")
            return None

        try:
            target = os.readlink(path)
        except OSError as e:
            self._stats.add_error(f"Cannot read symlink {path}: {e}")
            return None

        self._stats.add_error(f"Warning: broken symlink {path} (target not found)")
        self._stats.record_checked()
        return FileEntry(
            path=relative_path,
            size=link_stat.st_size,
            mtime_ns=link_stat.st_mtime_ns,
            is_symlink=True,
            link_target=target,
        )
