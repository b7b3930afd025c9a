"""Endpoint classification for sync arguments.

This module provides:
- is_archive_path: Suffix-based archive detection
- archive_options_from_path: ArchiveOptions implied by a file name
- signature_path: Location of the detached signature of an archive
- DirectoryEndpoint / ArchiveEndpoint: Tagged union of sync endpoints
- resolve_endpoint: Classifies a path once per sync call

Supported names (case-insensitive):
| Suffix         | Compressed | Encrypted |
|----------------|------------|-----------|
| .tar           | no         | no        |
| .tar.gz, .tgz  | yes        | no        |
| .tar.gpg       | no         | yes       |
| .tar.gz.gpg    | yes        | yes       |
| .tgz.gpg       | yes        | yes       |
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from msync.core.config import ArchiveOptions

COMPRESSED_SUFFIXES = (".tar.gz", ".tgz")
PLAIN_SUFFIXES = (".tar",)
ENCRYPTED_SUFFIX = ".gpg"
SIGNATURE_SUFFIX = ".sig"


def _base_name(path: Path | str) -> tuple[str, bool]:
    """Lower-cased file name without the encryption suffix, and whether it had one."""
    name = Path(path).name.lower()
    if name.endswith(ENCRYPTED_SUFFIX):
        return name[: -len(ENCRYPTED_SUFFIX)], True
    return name, False


def is_archive_path(path: Path | str) -> bool:
    """Check whether a path names a tar archive by its suffix."""
    name, _ = _base_name(path)
    return name.endswith(COMPRESSED_SUFFIXES + PLAIN_SUFFIXES)


def archive_options_from_path(path: Path | str) -> ArchiveOptions:
    """Derive compression and encryption from an archive file name.

    Signing is never implied by a name; it has to be requested explicitly.
    """
    name, encrypted = _base_name(path)
    return ArchiveOptions(compress=name.endswith(COMPRESSED_SUFFIXES), encrypt=encrypted)


def signature_path(archive: Path) -> Path:
    """Return the detached signature path for an archive (<archive>.sig)."""
    return archive.with_name(archive.name + SIGNATURE_SUFFIX)


@dataclass(frozen=True)
class DirectoryEndpoint:
    """A live directory at one end of a sync."""

    path: Path


@dataclass(frozen=True)
class ArchiveEndpoint:
    """A tar archive at one end of a sync.

    Attributes:
        path: Archive file location.
        options: Suffix-implied options merged with explicit configuration.
    """

    path: Path
    options: ArchiveOptions

    @property
    def signature(self) -> Path:
        return signature_path(self.path)


Endpoint = DirectoryEndpoint | ArchiveEndpoint


def resolve_endpoint(path: Path | str, explicit: ArchiveOptions | None = None) -> Endpoint:
    """Classify a sync argument.

    Args:
        path: Source or destination argument.
        explicit: Options from the command line or the caller.

    Returns:
        ArchiveEndpoint when the name has an archive suffix, DirectoryEndpoint otherwise.
    """
    path = Path(path)
    if not is_archive_path(path):
        return DirectoryEndpoint(path)
    options = archive_options_from_path(path).merged_with(explicit or ArchiveOptions())
    return ArchiveEndpoint(path, options)
