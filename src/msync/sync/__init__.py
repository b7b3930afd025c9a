"""Directory synchronization engine.

Architecture:
    Scanner → Comparator → WorkerPool → DeletionReconciler → report

Components:
- **Scanner**: Builds the immutable path -> FileEntry snapshot of one tree
- **Comparator**: Pure decision table (mtime / checksum / size)
- **WorkerPool**: Bounded queue feeding N copy/mkdir worker threads
- **DeletionReconciler**: Removes destination-only entries after the copy pass
- **RunStatistics**: The only state shared between threads
- **Syncer**: Orchestrates one run, handing archive endpoints to the dispatcher

All public symbols are re-exported here.
"""

from msync.sync.comparator import Decision, compare, needs_sync
from msync.sync.reconciler import DeletionReconciler, deletion_roots
from msync.sync.report import print_completion, print_preview, print_summary
from msync.sync.scanner import Scanner
from msync.sync.stats import RunStatistics, StatsSnapshot
from msync.sync.types import (
    ArchiveError,
    CryptoError,
    DestinationError,
    FileEntry,
    PathMap,
    SignatureVerificationError,
    SourceError,
    SyncError,
)
from msync.sync.workers import CopyWorker, DirectoryWorker, WorkerPool

# The engine pulls in the archive package, which depends on the modules above
from msync.sync.engine import Syncer, sync_paths  # noqa: E402, I001

__all__ = [
    # Types
    "FileEntry",
    "PathMap",
    # Exceptions
    "ArchiveError",
    "CryptoError",
    "DestinationError",
    "SignatureVerificationError",
    "SourceError",
    "SyncError",
    # Scanning and comparison
    "Decision",
    "Scanner",
    "compare",
    "needs_sync",
    # Execution
    "CopyWorker",
    "DeletionReconciler",
    "DirectoryWorker",
    "WorkerPool",
    "deletion_roots",
    # Statistics and reporting
    "RunStatistics",
    "StatsSnapshot",
    "print_completion",
    "print_preview",
    "print_summary",
    # Orchestration
    "Syncer",
    "sync_paths",
]
