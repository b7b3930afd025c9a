"""Worker pool for concurrent copy operations.

This module provides:
- WorkerPool: Runs the copy/mkdir pass of one sync over N worker threads
- PoolState: Lifecycle state of the pool

The producer (the calling thread) compares every source entry against the
destination snapshot and feeds the ones that need syncing into a bounded
queue. Each worker thread takes entries until it receives the stop
sentinel. run() returns only after every worker thread has exited.
"""

from __future__ import annotations

import logging
import queue
import threading
from enum import Enum, auto
from pathlib import Path
from typing import TYPE_CHECKING

from msync.sync.comparator import compare
from msync.sync.workers.base import BaseWorker, WorkerContext, WorkerResult
from msync.sync.workers.copy_worker import CopyWorker, DirectoryWorker

if TYPE_CHECKING:
    from msync.core.config import SyncPolicy
    from msync.sync.stats import RunStatistics
    from msync.sync.types import FileEntry, PathMap

logger = logging.getLogger(__name__)

# Queue slots per worker; the producer blocks when the queue is full
QUEUE_DEPTH_PER_WORKER = 4


class PoolState(Enum):
    """State of the worker pool."""

    STOPPED = auto()
    RUNNING = auto()


class WorkerPool:
    """Pool of worker threads for the copy pass of a sync.

    The pool is best-effort: a failing entry is recorded as a soft error
    in RunStatistics and the remaining entries are still processed.

    Usage:
        pool = WorkerPool(source_root, dest_root, policy, stats)
        pool.run(source_map, dest_map)
    """

    def __init__(
        self,
        source_root: Path,
        dest_root: Path,
        policy: SyncPolicy,
        stats: RunStatistics,
    ) -> None:
        """Initialize the worker pool.

        Args:
            source_root: Root of the source tree.
            dest_root: Root of the destination tree.
            policy: Sync policy (thread count, method, dry-run).
            stats: Statistics accumulator shared by the whole run.
        """
        self._source_root = Path(source_root)
        self._dest_root = Path(dest_root)
        self._policy = policy
        self._stats = stats
        self._max_workers = policy.threads

        self._pool_state = PoolState.STOPPED
        self._lock = threading.Lock()

        self._completed_count = 0
        self._error_count = 0
        self._queued_count = 0

    @property
    def state(self) -> PoolState:
        """Get current pool state."""
        return self._pool_state

    @property
    def completed_count(self) -> int:
        """Get number of entries processed successfully."""
        with self._lock:
            return self._completed_count

    @property
    def error_count(self) -> int:
        """Get number of entries that failed."""
        with self._lock:
            return self._error_count

    @property
    def queued_count(self) -> int:
        """Get number of entries the producer queued."""
        return self._queued_count

    def run(self, source_map: PathMap, dest_map: PathMap) -> None:
        """Sync every source entry that the comparator selects.

        Blocks until all workers have exited.

        Args:
            source_map: Source snapshot.
            dest_map: Destination snapshot.
        """
        with self._lock:
            if self._pool_state != PoolState.STOPPED:
                raise RuntimeError("Worker pool is already running")
            self._pool_state = PoolState.RUNNING

        work_queue: queue.Queue[FileEntry | None] = queue.Queue(
            maxsize=self._max_workers * QUEUE_DEPTH_PER_WORKER
        )
        workers = [
            threading.Thread(
                target=self._worker_loop,
                args=(work_queue,),
                name=f"WorkerPool-{i}",
                daemon=True,
            )
            for i in range(self._max_workers)
        ]
        for thread in workers:
            thread.start()
        logger.debug(f"Worker pool started with {self._max_workers} workers")

        try:
            self._produce(source_map, dest_map, work_queue)
        finally:
            # Close the queue: one stop sentinel per worker
            for _ in workers:
                work_queue.put(None)
            for thread in workers:
                thread.join()
            with self._lock:
                self._pool_state = PoolState.STOPPED

        logger.debug(
            f"Worker pool finished: {self._queued_count} queued, "
            f"{self._completed_count} completed, {self._error_count} failed"
        )

    def _produce(
        self,
        source_map: PathMap,
        dest_map: PathMap,
        work_queue: queue.Queue[FileEntry | None],
    ) -> None:
        """Compare every source entry and queue the ones needing sync."""
        for path in sorted(source_map):
            entry = source_map[path]
            decision = compare(entry, dest_map, self._policy.method)

            if decision.degraded:
                self._stats.add_error(
                    f"Checksum unavailable for {path}, compared by modification time instead"
                )

            if decision.needs_sync:
                logger.debug(f"Queued {path}: {decision.reason}")
                self._queued_count += 1
                work_queue.put(entry)

    def _worker_loop(self, work_queue: queue.Queue[FileEntry | None]) -> None:
        """Main loop for worker threads."""
        while True:
            entry = work_queue.get()
            if entry is None:
                # Poison pill - stop worker
                break
            try:
                self._process_entry(entry)
            except Exception:
                logger.exception(f"Unexpected error processing {entry.path}")
                with self._lock:
                    self._error_count += 1

    def _process_entry(self, entry: FileEntry) -> None:
        worker = self._create_worker(entry)
        ctx = WorkerContext(
            entry=entry,
            source_root=self._source_root,
            dest_root=self._dest_root,
            dry_run=self._policy.dry_run,
        )
        result: WorkerResult = worker.execute(ctx)

        if result.success:
            with self._lock:
                self._completed_count += 1
        else:
            with self._lock:
                self._error_count += 1
            self._stats.add_error(result.error or f"Failed to sync {entry.path}")

    def _create_worker(self, entry: FileEntry) -> BaseWorker:
        """Create the worker matching the entry type."""
        if entry.is_dir:
            return DirectoryWorker(self._stats)
        return CopyWorker(self._stats)
