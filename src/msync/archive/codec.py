"""Tar container codec.

This module provides:
- ArchiveEntry: Metadata of one archive member
- TarCodec: Creates, extracts and lists tar streams (optionally gzip-compressed)

Format:
    Archives are written in PAX format so sub-second modification times and
    long paths survive the round trip. Member names are the slash-separated
    paths relative to the archived root; the root itself is not stored.

    Reading auto-detects compression, so callers only say whether to
    compress when writing. All operations are streaming: the archive is
    never loaded in memory and a non-seekable stream works.
"""

from __future__ import annotations

import contextlib
import logging
import os
import posixpath
import shutil
import stat
import tarfile
import tempfile
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from msync.core.config import SyncPolicy
from msync.sync.scanner import Scanner
from msync.sync.stats import RunStatistics
from msync.sync.types import NS_PER_SECOND, ArchiveError, FileEntry
from msync.sync.workers.base import ensure_directory

logger = logging.getLogger(__name__)

COPY_BUFFER_SIZE = 1024 * 1024

WarningCallback = Callable[[str], None]


@dataclass(frozen=True)
class ArchiveEntry:
    """Metadata of one archive member.

    Attributes:
        path: Slash-separated path relative to the archived root.
        size: Size in bytes (0 for directories and links).
        mtime: Modification time in seconds since the epoch.
        is_dir: Whether the member is a directory.
        mode: POSIX permission bits.
        link_target: Target path for symlink members, None otherwise.
    """

    path: str
    size: int
    mtime: float
    is_dir: bool = False
    mode: int = 0
    link_target: str | None = None

    @property
    def is_symlink(self) -> bool:
        return self.link_target is not None

    def to_file_entry(self) -> FileEntry:
        """Convert to the FileEntry the comparator works on."""
        return FileEntry(
            path=self.path,
            size=self.size,
            mtime_ns=round(self.mtime * NS_PER_SECOND),
            is_dir=self.is_dir,
            mode=self.mode,
            is_symlink=self.is_symlink,
            link_target=self.link_target,
        )


def _member_path(name: str) -> str | None:
    """Normalize a member name; None if it is the root or leaves the root."""
    if name.startswith("/") or "\\" in name:
        return None
    normalized = posixpath.normpath(name)
    if normalized in (".", "") or normalized == ".." or normalized.startswith("../"):
        return None
    return normalized


def _entry_from_member(path: str, member: tarfile.TarInfo) -> ArchiveEntry:
    return ArchiveEntry(
        path=path,
        size=member.size if member.isfile() else 0,
        mtime=float(member.mtime),
        is_dir=member.isdir(),
        mode=member.mode & 0o7777,
        link_target=member.linkname if member.issym() else None,
    )


def _warn(on_warning: WarningCallback | None, message: str) -> None:
    if on_warning is not None:
        on_warning(message)
    else:
        logger.warning(message)


class TarCodec:
    """Streaming tar reader/writer.

    Usage:
        codec = TarCodec()
        with open("backup.tar.gz", "wb") as out:
            codec.create_from_directory("photos", out, compress=True)
        with open("backup.tar.gz", "rb") as stream:
            entries = codec.extract_to(stream, "restored")
    """

    def create_from_directory(
        self,
        directory: Path | str,
        out: BinaryIO,
        compress: bool = False,
        on_warning: WarningCallback | None = None,
    ) -> list[FileEntry]:
        """Archive a whole directory tree.

        Args:
            directory: Root of the tree to archive.
            out: Writable binary stream receiving the archive.
            compress: Gzip-compress the tar stream.
            on_warning: Receives per-entry problems; they are logged otherwise.

        Returns:
            The entries that were written.
        """
        stats = RunStatistics()
        entries = Scanner(SyncPolicy(), stats).scan(directory)
        for error in stats.snapshot().errors:
            _warn(on_warning, error)
        return self.write_entries(directory, entries.values(), out, compress, on_warning)

    def write_entries(
        self,
        root: Path | str,
        entries: Iterable[FileEntry],
        out: BinaryIO,
        compress: bool = False,
        on_warning: WarningCallback | None = None,
    ) -> list[FileEntry]:
        """Write the given entries of a tree as archive members.

        Entries are written in path order, so every directory precedes its
        contents. An entry that can no longer be read is skipped with a
        warning.

        Args:
            root: Directory the entry paths are relative to.
            entries: Entries to write.
            out: Writable binary stream receiving the archive.
            compress: Gzip-compress the tar stream.
            on_warning: Receives per-entry problems; they are logged otherwise.

        Returns:
            The entries that were written.

        Raises:
            ArchiveError: If writing the stream fails.
        """
        root = Path(root)
        mode = "w|gz" if compress else "w|"
        written: list[FileEntry] = []

        try:
            with tarfile.open(fileobj=out, mode=mode, format=tarfile.PAX_FORMAT) as tar:
                for entry in sorted(entries, key=lambda e: e.path):
                    if self._add_entry(tar, root, entry, on_warning):
                        written.append(entry)
        except (OSError, tarfile.TarError) as e:
            raise ArchiveError(f"Failed to write archive: {e}") from e

        logger.debug(f"Wrote {len(written)} archive members from {root}")
        return written

    def _add_entry(
        self,
        tar: tarfile.TarFile,
        root: Path,
        entry: FileEntry,
        on_warning: WarningCallback | None,
    ) -> bool:
        path = root / entry.path
        try:
            info = tar.gettarinfo(str(path), arcname=entry.path)
            if info.issym() and not entry.is_symlink:
                # The scanner followed this link; archive what it points to
                info = self._followed_link_info(path, entry)
        except OSError as e:
            _warn(on_warning, f"Skipping {path}: {e}")
            return False
        # Keep full timestamp precision (PAX stores floats)
        if not info.issym():
            info.mtime = entry.mtime

        logger.debug(f"Archiving {entry.path}")
        if info.isfile():
            try:
                src = open(path, "rb")
            except OSError as e:
                _warn(on_warning, f"Skipping {path}: {e}")
                return False
            with src:
                tar.addfile(info, src)
        else:
            tar.addfile(info)
        return True

    @staticmethod
    def _followed_link_info(path: Path, entry: FileEntry) -> tarfile.TarInfo:
        st = os.stat(path)
        info = tarfile.TarInfo(entry.path)
        info.mode = stat.S_IMODE(st.st_mode)
        if entry.is_dir:
            info.type = tarfile.DIRTYPE
        else:
            info.type = tarfile.REGTYPE
            info.size = st.st_size
        return info

    def extract_to(
        self,
        stream: BinaryIO,
        directory: Path | str,
        on_warning: WarningCallback | None = None,
    ) -> list[ArchiveEntry]:
        """Extract an archive stream into a directory.

        Parents are created before the files beneath them. Regular files get
        their permission bits and modification time restored. Members that
        would land outside the directory, and member types other than
        directories, regular files and relative symlinks, are skipped with a
        warning.

        Args:
            stream: Readable binary stream (compression is auto-detected).
            directory: Extraction target; created if missing.
            on_warning: Receives per-member problems; they are logged otherwise.

        Returns:
            The members that were extracted.

        Raises:
            ArchiveError: If the stream is not a readable archive.
        """
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        extracted: list[ArchiveEntry] = []

        try:
            with tarfile.open(fileobj=stream, mode="r|*") as tar:
                for member in tar:
                    path = _member_path(member.name)
                    if path is None:
                        if posixpath.normpath(member.name) != ".":
                            _warn(on_warning, f"Skipping member outside destination: {member.name}")
                        continue

                    entry = _entry_from_member(path, member)
                    target = directory / path

                    if member.isdir():
                        self._extract_dir(directory, target)
                    elif member.isfile():
                        self._extract_file(tar, member, directory, target, entry)
                    elif member.issym() and self._link_stays_inside(path, member.linkname):
                        self._extract_symlink(directory, target, member.linkname)
                    else:
                        _warn(on_warning, f"Skipping unsupported archive member: {member.name}")
                        continue

                    extracted.append(entry)
        except (OSError, tarfile.TarError, EOFError) as e:
            raise ArchiveError(f"Failed to extract archive: {e}") from e

        logger.debug(f"Extracted {len(extracted)} archive members to {directory}")
        return extracted

    def list_entries(self, stream: BinaryIO) -> list[ArchiveEntry]:
        """List archive members without extracting them.

        Raises:
            ArchiveError: If the stream is not a readable archive.
        """
        entries: list[ArchiveEntry] = []
        try:
            with tarfile.open(fileobj=stream, mode="r|*") as tar:
                for member in tar:
                    path = _member_path(member.name)
                    if path is None:
                        continue
                    if member.isdir() or member.isfile() or member.issym():
                        entries.append(_entry_from_member(path, member))
        except (OSError, tarfile.TarError, EOFError) as e:
            raise ArchiveError(f"Failed to read archive: {e}") from e
        return entries

    @staticmethod
    def _link_stays_inside(path: str, link_target: str) -> bool:
        if posixpath.isabs(link_target):
            return False
        resolved = posixpath.normpath(posixpath.join(posixpath.dirname(path), link_target))
        return resolved != ".." and not resolved.startswith("../")

    @staticmethod
    def _clear_for_file(target: Path) -> None:
        """Remove a directory or symlink where a file or link must go."""
        if target.is_symlink():
            target.unlink()
        elif target.is_dir():
            shutil.rmtree(target)

    def _make_parents(self, directory: Path, target: Path) -> None:
        ensure_directory(target.parent, directory)

    def _extract_dir(self, directory: Path, target: Path) -> None:
        if target.is_symlink() or (target.exists() and not target.is_dir()):
            target.unlink()
        self._make_parents(directory, target)
        target.mkdir(exist_ok=True)

    def _extract_file(
        self,
        tar: tarfile.TarFile,
        member: tarfile.TarInfo,
        directory: Path,
        target: Path,
        entry: ArchiveEntry,
    ) -> None:
        self._make_parents(directory, target)
        self._clear_for_file(target)

        src = tar.extractfile(member)
        if src is None:
            raise ArchiveError(f"Cannot read archive member: {member.name}")

        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.")
        try:
            with src, os.fdopen(fd, "wb") as dst:
                shutil.copyfileobj(src, dst, COPY_BUFFER_SIZE)
            os.chmod(tmp_name, entry.mode)
            mtime_ns = round(entry.mtime * NS_PER_SECOND)
            os.utime(tmp_name, ns=(mtime_ns, mtime_ns))
            os.replace(tmp_name, target)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise

    def _extract_symlink(self, directory: Path, target: Path, link_target: str) -> None:
        self._make_parents(directory, target)
        self._clear_for_file(target)
        if target.exists():
            target.unlink()
        os.symlink(link_target, target)
