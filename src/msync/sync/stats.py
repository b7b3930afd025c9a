"""Thread-safe statistics for one sync run.

This module provides:
- RunStatistics: Monitor object mutated by the scanner, workers and reconciler
- StatsSnapshot: Immutable copy of the counters, returned to callers
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatsSnapshot:
    """Point-in-time copy of RunStatistics."""

    files_checked: int = 0
    files_copied: int = 0
    files_deleted: int = 0
    files_to_copy: int = 0
    files_to_delete: int = 0
    dirs_created: int = 0
    dirs_to_create: int = 0
    bytes_copied: int = 0
    bytes_deleted: int = 0
    bytes_to_copy: int = 0
    bytes_to_delete: int = 0
    errors: tuple[str, ...] = ()

    @property
    def total_planned(self) -> int:
        """Number of operations a dry run would perform."""
        return self.files_to_copy + self.files_to_delete + self.dirs_to_create

    @property
    def has_errors(self) -> bool:
        """Whether any soft error was recorded."""
        return bool(self.errors)


class RunStatistics:
    """Accumulator for one top-level sync call.

    All counters are guarded by a single lock. Callers only use the
    record_* methods; fields are never written directly.

    Usage:
        stats = RunStatistics()
        stats.record_copied(1024)
        stats.add_error("Failed to copy a.txt: permission denied")
        snapshot = stats.snapshot()
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._files_checked = 0
        self._files_copied = 0
        self._files_deleted = 0
        self._files_to_copy = 0
        self._files_to_delete = 0
        self._dirs_created = 0
        self._dirs_to_create = 0
        self._bytes_copied = 0
        self._bytes_deleted = 0
        self._bytes_to_copy = 0
        self._bytes_to_delete = 0
        self._errors: list[str] = []

    def record_checked(self) -> None:
        with self._lock:
            self._files_checked += 1

    def record_copied(self, size: int) -> None:
        with self._lock:
            self._files_copied += 1
            self._bytes_copied += size

    def record_to_copy(self, size: int) -> None:
        with self._lock:
            self._files_to_copy += 1
            self._bytes_to_copy += size

    def record_deleted(self, size: int) -> None:
        with self._lock:
            self._files_deleted += 1
            self._bytes_deleted += size

    def record_to_delete(self, size: int) -> None:
        with self._lock:
            self._files_to_delete += 1
            self._bytes_to_delete += size

    def record_dir_created(self) -> None:
        with self._lock:
            self._dirs_created += 1

    def record_dir_to_create(self) -> None:
        with self._lock:
            self._dirs_to_create += 1

    def add_error(self, message: str) -> None:
        """Record a non-fatal error and log it immediately."""
        with self._lock:
            self._errors.append(message)
        logger.warning(message)

    @property
    def error_count(self) -> int:
        with self._lock:
            return len(self._errors)

    def snapshot(self) -> StatsSnapshot:
        """Return a consistent, immutable copy of all counters."""
        with self._lock:
            return StatsSnapshot(
                files_checked=self._files_checked,
                files_copied=self._files_copied,
                files_deleted=self._files_deleted,
                files_to_copy=self._files_to_copy,
                files_to_delete=self._files_to_delete,
                dirs_created=self._dirs_created,
                dirs_to_create=self._dirs_to_create,
                bytes_copied=self._bytes_copied,
                bytes_deleted=self._bytes_deleted,
                bytes_to_copy=self._bytes_to_copy,
                bytes_to_delete=self._bytes_to_delete,
                errors=tuple(self._errors),
            )
