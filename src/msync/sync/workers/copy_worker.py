"""Workers that materialize source entries in the destination.

This module provides:
- CopyWorker: Copies one regular file (whole-file replace) and restores its metadata
- DirectoryWorker: Creates one directory
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import stat
import tempfile
from pathlib import Path

from msync.core.humanize import format_bytes
from msync.sync.workers.base import BaseWorker, WorkerContext, ensure_directory

logger = logging.getLogger(__name__)

COPY_BUFFER_SIZE = 1024 * 1024
TEMP_SUFFIX = ".msync-tmp"


class CopyWorker(BaseWorker):
    """Worker for copying one file from source to destination.

    The content is streamed into a temporary file next to the destination
    and renamed over it, then the source's modification time (used for both
    atime and mtime) and permission bits are applied. A metadata failure is
    recorded as a soft error and does not undo the copy.

    Usage:
        worker = CopyWorker(stats)
        result = worker.execute(WorkerContext(entry, source_root, dest_root))
    """

    @property
    def worker_type(self) -> str:
        """Return worker type name."""
        return "copy"

    def _do_work(self, ctx: WorkerContext) -> int:
        """Copy the file.

        Returns:
            Number of bytes written (planned bytes in dry-run mode).
        """
        entry = ctx.entry
        source_path = ctx.source_path
        dest_path = ctx.dest_path

        if ctx.dry_run:
            logger.info(f"Would copy: {source_path} -> {dest_path} ({format_bytes(entry.size)})")
            self._stats.record_to_copy(entry.size)
            return entry.size

        logger.info(f"Copying: {source_path} -> {dest_path} ({format_bytes(entry.size)})")

        # Workers race over directory order, so parents are created on demand
        ensure_directory(dest_path.parent, ctx.dest_root)
        if dest_path.is_dir() and not dest_path.is_symlink():
            logger.info(f"Replacing directory with file: {dest_path}")
            shutil.rmtree(dest_path)

        if entry.is_symlink:
            self._copy_symlink(entry.link_target or "", dest_path)
            self._stats.record_copied(0)
            return 0

        source_stat = os.stat(source_path)
        written = self._copy_content(source_path, dest_path)
        self._restore_metadata(dest_path, source_stat)
        self._stats.record_copied(written)
        return written

    def _copy_content(self, source_path: Path, dest_path: Path) -> int:
        """Stream source into a temp file beside dest, then rename it over dest."""
        fd, tmp_name = tempfile.mkstemp(
            dir=dest_path.parent, prefix=f".{dest_path.name}.", suffix=TEMP_SUFFIX
        )
        try:
            with open(source_path, "rb") as src, os.fdopen(fd, "wb") as dst:
                shutil.copyfileobj(src, dst, COPY_BUFFER_SIZE)
                written = dst.tell()
            os.replace(tmp_name, dest_path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise
        return written

    def _copy_symlink(self, target: str, dest_path: Path) -> None:
        """Recreate a dangling symlink kept by the scanner."""
        if dest_path.is_symlink() or dest_path.exists():
            dest_path.unlink()
        os.symlink(target, dest_path)

    def _restore_metadata(self, dest_path: Path, source_stat: os.stat_result) -> None:
        try:
            os.chmod(dest_path, stat.S_IMODE(source_stat.st_mode))
        except OSError as e:
            self._stats.add_error(f"Failed to preserve permissions for {dest_path}: {e}")

        mtime_ns = source_stat.st_mtime_ns
        try:
            os.utime(dest_path, ns=(mtime_ns, mtime_ns))
        except OSError as e:
            self._stats.add_error(f"Failed to preserve timestamps for {dest_path}: {e}")


class DirectoryWorker(BaseWorker):
    """Worker for creating one directory in the destination.

    Creation is idempotent: a directory already created as the parent of
    a copied file is not an error.
    """

    @property
    def worker_type(self) -> str:
        """Return worker type name."""
        return "create directory"

    def _do_work(self, ctx: WorkerContext) -> None:
        dest_path = ctx.dest_path

        if ctx.dry_run:
            logger.info(f"Would create directory: {dest_path}")
            self._stats.record_dir_to_create()
            return

        logger.info(f"Creating directory: {dest_path}")
        ensure_directory(dest_path, ctx.dest_root)
        self._stats.record_dir_created()
