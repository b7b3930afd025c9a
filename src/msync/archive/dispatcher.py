"""Routing of syncs that have an archive at one or both ends.

This module provides:
- ArchiveDispatcher: Runs the dir -> archive, archive -> dir and
  archive -> archive flows on top of the directory sync

Flows:
    dir -> archive      scan, write tar (gzip), encrypt, atomic rename, sign
    archive -> dir      verify, decrypt, unpack into a temporary directory,
                        run the directory sync from it into the destination
    archive -> archive  unpack both ends into a temporary directory, run the
                        directory sync between them, re-pack the destination

Byte order on disk is always tar, then gzip, then encryption. The
detached signature covers the final archive file.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path
from typing import BinaryIO

from msync.archive.codec import ArchiveEntry, TarCodec
from msync.archive.crypto import CryptoService, GpgCryptoService
from msync.archive.paths import ArchiveEndpoint, Endpoint
from msync.core.config import SyncPolicy
from msync.sync.scanner import Scanner
from msync.sync.stats import RunStatistics
from msync.sync.types import DestinationError, FileEntry, SourceError

logger = logging.getLogger(__name__)

TEMP_PREFIX = "msync-tar-"

# Runs the directory flow between two roots with the run's policy and statistics
DirectorySync = Callable[[Path, Path], None]


class ArchiveDispatcher:
    """Runs one sync call whose endpoints may be archives.

    The dispatcher never implements cryptography: it pipes byte streams
    through the CryptoService. When none is given and an archive needs
    one, a GpgCryptoService is created on first use.

    Usage:
        dispatcher = ArchiveDispatcher(policy, stats, directory_sync)
        dispatcher.dispatch(resolve_endpoint(src), resolve_endpoint(dst))
    """

    def __init__(
        self,
        policy: SyncPolicy,
        stats: RunStatistics,
        directory_sync: DirectorySync,
        crypto: CryptoService | None = None,
        codec: TarCodec | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            policy: Sync policy of the run.
            stats: Statistics accumulator of the run.
            directory_sync: Directory flow (scan, copy, delete) bound to the run.
            crypto: Encryption/signing service; gpg is used when None.
            codec: Tar codec.
        """
        self._policy = policy
        self._stats = stats
        self._directory_sync = directory_sync
        self._crypto = crypto
        self._codec = codec or TarCodec()

    def dispatch(self, source: Endpoint, dest: Endpoint) -> None:
        """Sync source into dest, whatever their kinds.

        Raises:
            SourceError: Source directory or archive is missing.
            DestinationError: Destination cannot be created or written.
            ArchiveError: An archive cannot be read or written.
            CryptoError: Decryption, signing or verification failed.
        """
        if isinstance(source, ArchiveEndpoint) and isinstance(dest, ArchiveEndpoint):
            self._archive_to_archive(source, dest)
        elif isinstance(source, ArchiveEndpoint):
            self._archive_to_directory(source, dest.path)
        elif isinstance(dest, ArchiveEndpoint):
            self._directory_to_archive(source.path, dest)
        else:
            self._directory_sync(source.path, dest.path)

    def list_entries(self, archive: ArchiveEndpoint) -> list[ArchiveEntry]:
        """List the members of an archive, verifying and decrypting as configured."""
        self._check_archive(archive)
        with self._plain_stream(archive) as stream:
            return self._codec.list_entries(stream)

    # =========================================================================
    # Flows
    # =========================================================================

    def _directory_to_archive(self, source: Path, archive: ArchiveEndpoint) -> None:
        entries = Scanner(self._policy, self._stats).scan(source)

        if self._policy.dry_run:
            logger.info(f"Would create archive: {source} -> {archive.path}")
            for entry in entries.values():
                if entry.is_dir:
                    self._stats.record_dir_to_create()
                else:
                    self._stats.record_to_copy(entry.size)
            return

        logger.info(f"Creating archive {archive.path} from directory {source}")
        written = self._pack(source, entries.values(), archive)
        for entry in written:
            if entry.is_dir:
                self._stats.record_dir_created()
            else:
                self._stats.record_copied(entry.size)

    def _archive_to_directory(self, archive: ArchiveEndpoint, dest: Path) -> None:
        self._check_archive(archive)
        if dest.exists() and not dest.is_dir():
            raise DestinationError(f"Destination is not a directory: {dest}")
        if self._policy.dry_run:
            logger.info(f"Would extract archive: {archive.path} -> {dest}")
        else:
            logger.info(f"Extracting archive {archive.path} to directory {dest}")

        # The unpacked tree is an ordinary source: parents implied by member
        # names exist on disk, and the comparator decides what gets copied
        with tempfile.TemporaryDirectory(prefix=TEMP_PREFIX) as tmp:
            source_dir = Path(tmp) / "source"
            self._unpack(archive, source_dir)
            self._directory_sync(source_dir, dest)

    def _archive_to_archive(self, source: ArchiveEndpoint, dest: ArchiveEndpoint) -> None:
        self._check_archive(source)
        logger.info(f"Synchronizing archive {source.path} to {dest.path}")

        with tempfile.TemporaryDirectory(prefix=TEMP_PREFIX) as tmp:
            source_dir = Path(tmp) / "source"
            dest_dir = Path(tmp) / "dest"

            self._unpack(source, source_dir)
            if dest.path.exists():
                self._unpack(dest, dest_dir)
            else:
                dest_dir.mkdir()

            self._directory_sync(source_dir, dest_dir)

            if self._policy.dry_run:
                logger.info(f"Would re-create archive: {dest.path}")
                return

            self._pack(dest_dir, self._scan_for_packing(dest_dir), dest)

    # =========================================================================
    # Building blocks
    # =========================================================================

    def _crypto_service(self, archive: ArchiveEndpoint) -> CryptoService:
        if self._crypto is None:
            self._crypto = GpgCryptoService(keyring=archive.options.keyring)
        return self._crypto

    @staticmethod
    def _check_archive(archive: ArchiveEndpoint) -> None:
        if not archive.path.is_file():
            raise SourceError(f"Archive not found: {archive.path}")

    def _scan_for_packing(self, root: Path) -> list[FileEntry]:
        """Scan a whole tree for archiving, without digests or statistics."""
        scratch = RunStatistics()
        entries = Scanner(SyncPolicy(broken_links=self._policy.broken_links), scratch).scan(root)
        for error in scratch.snapshot().errors:
            self._stats.add_error(error)
        return list(entries.values())

    def _verify(self, archive: ArchiveEndpoint) -> None:
        """Check the detached signature when signing is requested.

        A missing signature is reported as a soft error; a signature that
        does not validate aborts the operation.
        """
        if not archive.options.sign:
            return
        signature = archive.signature
        if not signature.exists():
            self._stats.add_error(f"Warning: no signature found for {archive.path}")
            return
        self._crypto_service(archive).verify(archive.path, signature)
        logger.info(f"Signature verified: {signature}")

    @contextlib.contextmanager
    def _plain_stream(self, archive: ArchiveEndpoint) -> Iterator[BinaryIO]:
        """Open the archive as a (possibly compressed) tar stream, decrypting if needed."""
        self._verify(archive)
        try:
            raw = open(archive.path, "rb")
        except OSError as e:
            raise SourceError(f"Cannot open archive {archive.path}: {e}") from e

        with raw:
            if not archive.options.encrypt:
                yield raw
                return
            with tempfile.TemporaryFile(prefix=TEMP_PREFIX) as plain:
                self._crypto_service(archive).decrypt(raw, plain)
                plain.seek(0)
                yield plain

    def _unpack(self, archive: ArchiveEndpoint, directory: Path) -> list[ArchiveEntry]:
        with self._plain_stream(archive) as stream:
            return self._codec.extract_to(stream, directory, on_warning=self._stats.add_error)

    def _pack(
        self, root: Path, entries: Iterable[FileEntry], archive: ArchiveEndpoint
    ) -> list[FileEntry]:
        """Write entries of root to the archive atomically, then sign it.

        The archive is built in a temporary file next to its final location
        and renamed over it, so a failed run never leaves a partial archive.
        """
        target = archive.path
        options = archive.options
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=target.parent, prefix=f".{target.name}.", suffix=".msync-tmp"
            )
        except OSError as e:
            raise DestinationError(f"Cannot write archive {target}: {e}") from e

        try:
            with os.fdopen(fd, "wb") as out:
                if options.encrypt:
                    with tempfile.TemporaryFile(prefix=TEMP_PREFIX) as plain:
                        written = self._codec.write_entries(
                            root, entries, plain, options.compress, self._stats.add_error
                        )
                        plain.seek(0)
                        self._crypto_service(archive).encrypt(plain, out, options.key_id)
                else:
                    written = self._codec.write_entries(
                        root, entries, out, options.compress, self._stats.add_error
                    )
            os.replace(tmp_name, target)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise

        logger.info(f"Wrote archive {target} ({len(written)} entries)")

        if options.sign:
            signature = self._crypto_service(archive).detached_sign(target, options.key_id)
            logger.info(f"Created signature: {signature}")
        return written

