"""Workers for the copy pass of a sync.

This package provides:
- BaseWorker: Abstract base class for single-entry operations
- CopyWorker: Whole-file copy with timestamp and mode preservation
- DirectoryWorker: Idempotent directory creation
- WorkerPool: Manages concurrent worker threads

Usage:
    from msync.sync.workers import WorkerPool

    pool = WorkerPool(source_root, dest_root, policy, stats)
    pool.run(source_map, dest_map)
"""

from msync.sync.workers.base import (
    BaseWorker,
    WorkerContext,
    WorkerResult,
    ensure_directory,
)
from msync.sync.workers.copy_worker import CopyWorker, DirectoryWorker
from msync.sync.workers.pool import PoolState, WorkerPool

__all__ = [
    # Base
    "BaseWorker",
    "WorkerContext",
    "WorkerResult",
    "ensure_directory",
    # Workers
    "CopyWorker",
    "DirectoryWorker",
    # Pool
    "PoolState",
    "WorkerPool",
]
