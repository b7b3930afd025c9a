"""Deletion pass for mirror-style syncs.

This module provides:
- DeletionReconciler: Removes destination entries that are absent from the source
- deletion_roots: Collapses destination-only paths to their top-most ancestors

The reconciler runs strictly after the worker pool has finished, so it
never races with a copy into the same subtree.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from msync.core.config import SyncPolicy
    from msync.sync.stats import RunStatistics
    from msync.sync.types import FileEntry, PathMap

logger = logging.getLogger(__name__)


def _is_below(path: str, ancestor: str) -> bool:
    return path.startswith(ancestor + "/")


def deletion_roots(source_map: PathMap, dest_map: PathMap) -> list[str]:
    """Return the top-most destination-only paths, sorted.

    A path whose ancestor is itself destination-only is left out: removing
    the ancestor removes it too.

    Args:
        source_map: Source snapshot.
        dest_map: Destination snapshot.

    Returns:
        Sorted list of relative paths to remove.
    """
    orphans = sorted(path for path in dest_map if path not in source_map)

    roots: list[str] = []
    for path in orphans:
        # Sorted order puts every ancestor before its descendants
        if roots and _is_below(path, roots[-1]):
            continue
        roots.append(path)
    return roots


class DeletionReconciler:
    """Removes destination entries that the source no longer has.

    Every removal is counted once per file entry under the removed path,
    so the deleted counters match what a per-file delete would report.
    Failures are soft errors; the sweep continues with the next path.

    Usage:
        reconciler = DeletionReconciler(policy, stats)
        reconciler.reconcile(dest_root, source_map, dest_map)
    """

    def __init__(self, policy: SyncPolicy, stats: RunStatistics) -> None:
        self._policy = policy
        self._stats = stats

    def reconcile(self, dest_root: Path, source_map: PathMap, dest_map: PathMap) -> list[str]:
        """Remove (or, in dry-run, count) every destination-only path.

        Args:
            dest_root: Root of the destination tree.
            source_map: Source snapshot.
            dest_map: Destination snapshot taken before the copy pass.

        Returns:
            The top-level relative paths that were removed or would be.
        """
        dest_root = Path(dest_root)
        roots = deletion_roots(source_map, dest_map)
        if not roots:
            logger.debug("Nothing to delete")
            return []

        for rel_path in roots:
            covered = self._covered_files(rel_path, dest_map)
            if self._policy.dry_run:
                logger.info(f"Would delete: {dest_root / rel_path}")
                for entry in covered:
                    self._stats.record_to_delete(entry.size)
                continue
            if self._remove(dest_root / rel_path, dest_map[rel_path]):
                for entry in covered:
                    self._stats.record_deleted(entry.size)

        return roots

    def _covered_files(self, rel_path: str, dest_map: PathMap) -> list[FileEntry]:
        """File entries at or below rel_path."""
        return [
            entry
            for path, entry in dest_map.items()
            if not entry.is_dir and (path == rel_path or _is_below(path, rel_path))
        ]

    def _remove(self, path: Path, entry: FileEntry) -> bool:
        logger.info(f"Deleting: {path}")
        try:
            if entry.is_dir and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
        except (FileNotFoundError, NotADirectoryError):
            # A copy replaced a parent of this path with a file
            logger.debug(f"Already gone: {path}")
            return False
        except OSError as e:
            self._stats.add_error(f"Failed to delete {path}: {e}")
            return False
        return True
