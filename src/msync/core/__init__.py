"""Core module - Shared configuration, crypto primitives and types."""

from msync.core.config import DEFAULT_THREADS, ArchiveOptions, SyncPolicy
from msync.core.crypto import (
    compute_file_hash,
    decrypt_chunk,
    derive_key,
    encrypt_chunk,
    generate_salt,
)
from msync.core.humanize import format_bytes, format_duration
from msync.core.types import BrokenLinkPolicy, CompareMethod

__all__ = [
    # Config
    "ArchiveOptions",
    "DEFAULT_THREADS",
    "SyncPolicy",
    # Crypto
    "compute_file_hash",
    "decrypt_chunk",
    "derive_key",
    "encrypt_chunk",
    "generate_salt",
    # Formatting
    "format_bytes",
    "format_duration",
    # Types
    "BrokenLinkPolicy",
    "CompareMethod",
]
