"""Archive inspection commands for the msync CLI.

Commands:
- ls: List the entries of an archive
"""

from __future__ import annotations

import stat
import sys
from datetime import datetime

import click

from msync.archive.paths import resolve_endpoint
from msync.cli.config import configure_logging, load_config
from msync.cli.sync import CRYPTO_BACKENDS, build_crypto
from msync.core.config import ArchiveOptions
from msync.core.humanize import format_bytes
from msync.sync.engine import Syncer
from msync.sync.types import SyncError


def _file_mode(is_dir: bool, is_symlink: bool, mode: int) -> str:
    if is_dir:
        kind = stat.S_IFDIR
    elif is_symlink:
        kind = stat.S_IFLNK
    else:
        kind = stat.S_IFREG
    return stat.filemode(kind | mode)


@click.command(name="ls")
@click.argument("archive")
@click.option("--sign", is_flag=True, help="Verify the detached signature first.")
@click.option("--key-id", default=None, help="Key used to decrypt.")
@click.option("--keyring", default=None, help="Keyring file for gpg.")
@click.option(
    "--crypto",
    "crypto_backend",
    type=click.Choice(CRYPTO_BACKENDS),
    default=None,
    help="Encryption backend [default: gpg].",
)
def ls(
    archive: str,
    sign: bool,
    key_id: str | None,
    keyring: str | None,
    crypto_backend: str | None,
) -> None:
    """List the entries of ARCHIVE (size, modification time, path)."""
    config = load_config()
    configure_logging(verbose=False)

    options = ArchiveOptions(
        sign=sign,
        key_id=key_id or config.get("key_id"),
        keyring=keyring or config.get("keyring"),
    )
    backend = crypto_backend or config.get("crypto", "gpg")

    try:
        crypto = build_crypto(backend, options, [resolve_endpoint(archive, options)])
        entries = Syncer(archive_options=options, crypto=crypto).list_archive(archive)
    except SyncError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    total = 0
    for entry in entries:
        modified = datetime.fromtimestamp(entry.mtime).strftime("%Y-%m-%d %H:%M:%S")
        name = f"{entry.path}/" if entry.is_dir else entry.path
        if entry.is_symlink:
            name = f"{entry.path} -> {entry.link_target}"
        mode = _file_mode(entry.is_dir, entry.is_symlink, entry.mode)
        click.echo(f"{mode} {entry.size:>12} {modified} {name}")
        total += entry.size

    click.echo(f"\n{len(entries)} entries, {format_bytes(total)}")
