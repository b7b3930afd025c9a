"""msync - local file-tree synchronization with archive endpoints.

Usage:
    from msync import SyncPolicy, sync_paths

    snapshot = sync_paths("photos", "backup/photos.tar.gz", SyncPolicy(delete=True))
"""

__version__ = "0.1.0"

from msync.core import ArchiveOptions, BrokenLinkPolicy, CompareMethod, SyncPolicy  # noqa: E402
from msync.sync import (  # noqa: E402
    FileEntry,
    StatsSnapshot,
    SyncError,
    Syncer,
    sync_paths,
)

__all__ = [
    "ArchiveOptions",
    "BrokenLinkPolicy",
    "CompareMethod",
    "FileEntry",
    "StatsSnapshot",
    "SyncError",
    "SyncPolicy",
    "Syncer",
    "__version__",
    "sync_paths",
]
