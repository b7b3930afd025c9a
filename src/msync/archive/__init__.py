"""Archive endpoints - tar codec, crypto services and dispatch.

This package provides:
- resolve_endpoint: Classifies a sync argument as directory or archive
- TarCodec: Streaming tar creation, extraction and listing
- CryptoService: Encryption/signing protocol (gpg or passphrase backed)
- ArchiveDispatcher: Runs syncs that have an archive at either end
"""

from msync.archive.codec import ArchiveEntry, TarCodec
from msync.archive.crypto import CryptoService, GpgCryptoService, PassphraseCryptoService
from msync.archive.dispatcher import ArchiveDispatcher
from msync.archive.paths import (
    ArchiveEndpoint,
    DirectoryEndpoint,
    Endpoint,
    archive_options_from_path,
    is_archive_path,
    resolve_endpoint,
    signature_path,
)

__all__ = [
    # Paths
    "ArchiveEndpoint",
    "DirectoryEndpoint",
    "Endpoint",
    "archive_options_from_path",
    "is_archive_path",
    "resolve_endpoint",
    "signature_path",
    # Codec
    "ArchiveEntry",
    "TarCodec",
    # Crypto
    "CryptoService",
    "GpgCryptoService",
    "PassphraseCryptoService",
    # Dispatch
    "ArchiveDispatcher",
]
