"""Base worker class for sync operations.

This module provides:
- WorkerResult: Result of a worker execution
- WorkerContext: Entry and roots handed to a worker
- BaseWorker: Abstract base class for copy/mkdir workers
- ensure_directory: Idempotent, thread-safe directory creation
"""

from __future__ import annotations

import contextlib
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from msync.sync.stats import RunStatistics
    from msync.sync.types import FileEntry

logger = logging.getLogger(__name__)


@dataclass
class WorkerResult:
    """Result of a worker execution.

    Attributes:
        success: Whether the operation succeeded.
        path: Relative path of the processed entry.
        result: The result value if successful (type depends on worker).
        error: Error message if failed.
        elapsed_time: Time taken in seconds.
    """

    success: bool
    path: str
    result: Any = None
    error: str | None = None
    elapsed_time: float = 0.0


@dataclass(frozen=True)
class WorkerContext:
    """Context passed to worker execution.

    Attributes:
        entry: The source entry to materialize in the destination.
        source_root: Root of the source tree.
        dest_root: Root of the destination tree.
        dry_run: Count the operation instead of performing it.
    """

    entry: FileEntry
    source_root: Path
    dest_root: Path
    dry_run: bool = False

    @property
    def source_path(self) -> Path:
        return self.source_root / self.entry.path

    @property
    def dest_path(self) -> Path:
        return self.dest_root / self.entry.path


class BaseWorker(ABC):
    """Abstract base class for workers.

    Workers perform one operation on one entry and never raise: failures
    are turned into a WorkerResult with success=False, so a single bad
    entry cannot stop the pool.

    Subclasses must implement:
    - _do_work(): The actual work logic
    - worker_type: Property returning the worker type name
    """

    def __init__(self, stats: RunStatistics) -> None:
        """Initialize the worker.

        Args:
            stats: Statistics accumulator shared by the whole run.
        """
        self._stats = stats

    @property
    @abstractmethod
    def worker_type(self) -> str:
        """Return the worker type name (e.g., 'copy', 'mkdir')."""
        ...

    def execute(self, ctx: WorkerContext) -> WorkerResult:
        """Execute the worker operation.

        Args:
            ctx: Worker context with the entry and both roots.

        Returns:
            WorkerResult describing the outcome.
        """
        start_time = time.time()
        try:
            value = self._do_work(ctx)
        except Exception as e:
            elapsed = time.time() - start_time
            error_msg = f"Failed to {self.worker_type} {ctx.entry.path}: {e}"
            logger.debug(f"{self.worker_type} worker failed after {elapsed:.2f}s: {e}")
            return WorkerResult(
                success=False,
                path=ctx.entry.path,
                error=error_msg,
                elapsed_time=elapsed,
            )

        return WorkerResult(
            success=True,
            path=ctx.entry.path,
            result=value,
            elapsed_time=time.time() - start_time,
        )

    @abstractmethod
    def _do_work(self, ctx: WorkerContext) -> Any:
        """Perform the actual work.

        Args:
            ctx: Worker context with the entry and both roots.

        Returns:
            The result of the operation.

        Raises:
            Exception: Any error during execution.
        """
        ...


def ensure_directory(path: Path, root: Path) -> None:
    """Create a directory and its parents below root.

    Safe to call redundantly from several threads. If a file or a dangling
    symlink below root blocks the path, it is removed first (source wins).

    Args:
        path: Directory to create.
        root: Destination root; nothing above it is ever touched.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
        return
    except (FileExistsError, NotADirectoryError):
        pass

    current = root
    for part in path.relative_to(root).parts:
        current = current / part
        # is_dir follows links, so a link to a real directory is kept
        if (current.is_symlink() or current.exists()) and not current.is_dir():
            logger.info(f"Replacing non-directory with directory: {current}")
            # Another worker may have replaced it already
            with contextlib.suppress(FileNotFoundError, IsADirectoryError):
                current.unlink()
            break

    path.mkdir(parents=True, exist_ok=True)
