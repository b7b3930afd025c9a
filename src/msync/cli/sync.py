"""Sync command for the msync CLI.

Commands:
- sync: Make a destination directory or archive match a source
"""

from __future__ import annotations

import os
import sys
from typing import Any

import click

from msync.archive.crypto import CryptoService, PassphraseCryptoService
from msync.archive.paths import ArchiveEndpoint, resolve_endpoint
from msync.cli.config import PASSPHRASE_ENV, configure_logging, load_config
from msync.core.config import DEFAULT_THREADS, ArchiveOptions, SyncPolicy
from msync.core.types import BrokenLinkPolicy, CompareMethod
from msync.sync.engine import Syncer
from msync.sync.types import SyncError

CRYPTO_BACKENDS = ("gpg", "passphrase")


def _pick(cli_value: Any, config: dict[str, Any], key: str, default: Any = None) -> Any:
    """Command-line value if given, else config file value, else default."""
    if cli_value is not None:
        return cli_value
    return config.get(key, default)


def build_crypto(
    backend: str, options: ArchiveOptions, endpoints: list[Any]
) -> CryptoService | None:
    """Create the crypto service for the run, if any archive needs one.

    The gpg service is left to the dispatcher, which creates it on first
    use with the archive's keyring.
    """
    needs_crypto = any(
        isinstance(endpoint, ArchiveEndpoint) and endpoint.options.needs_crypto
        for endpoint in endpoints
    )
    if not needs_crypto or backend != "passphrase":
        return None
    passphrase = os.environ.get(PASSPHRASE_ENV) or click.prompt(
        "Archive passphrase", hide_input=True
    )
    return PassphraseCryptoService(passphrase)


def resolve_paths(
    source: str | None, dest: str | None, source_opt: str | None, dest_opt: str | None
) -> tuple[str, str]:
    """Merge positional and -s/-d paths; each must be given exactly once."""
    if source and source_opt:
        raise click.UsageError("Source given both as argument and with --source")
    if dest and dest_opt:
        raise click.UsageError("Destination given both as argument and with --dest")
    final_source = source_opt or source
    final_dest = dest_opt or dest
    if not final_source or not final_dest:
        raise click.UsageError("Both SOURCE and DEST are required")
    return final_source, final_dest


@click.command()
@click.argument("source", required=False)
@click.argument("dest", required=False)
@click.option("-s", "--source", "source_opt", help="Source directory or archive.")
@click.option("-d", "--dest", "dest_opt", help="Destination directory or archive.")
@click.option("-c", "--checksum", is_flag=True, help="Compute content checksums while scanning.")
@click.option(
    "-n", "--dry-run", "--plan", "dry_run", is_flag=True, help="Show planned changes only."
)
@click.option("-i", "--interactive", is_flag=True, help="Preview, ask, then run.")
@click.option("-v", "--verbose", is_flag=True, help="Print every operation and a summary.")
@click.option(
    "-r/-R",
    "--recursive/--no-recursive",
    default=True,
    show_default=True,
    help="Descend into subdirectories.",
)
@click.option("--delete", is_flag=True, help="Delete destination entries missing from the source.")
@click.option(
    "-j",
    "--threads",
    type=click.IntRange(min=1),
    default=None,
    help=f"Number of copy workers [default: {DEFAULT_THREADS}].",
)
@click.option(
    "--method",
    type=click.Choice([m.value for m in CompareMethod]),
    default=None,
    help="Comparison method [default: mtime].",
)
@click.option("--skip-broken-links", is_flag=True, help="Silently skip dangling symlinks.")
@click.option("--compress", is_flag=True, help="Gzip-compress archives.")
@click.option("--encrypt", is_flag=True, help="Encrypt archives.")
@click.option("--sign", is_flag=True, help="Sign created archives, verify extracted ones.")
@click.option("--key-id", default=None, help="Key used to encrypt and sign.")
@click.option("--keyring", default=None, help="Keyring file for gpg.")
@click.option(
    "--crypto",
    "crypto_backend",
    type=click.Choice(CRYPTO_BACKENDS),
    default=None,
    help="Encryption backend [default: gpg].",
)
def sync(
    source: str | None,
    dest: str | None,
    source_opt: str | None,
    dest_opt: str | None,
    checksum: bool,
    dry_run: bool,
    interactive: bool,
    verbose: bool,
    recursive: bool,
    delete: bool,
    threads: int | None,
    method: str | None,
    skip_broken_links: bool,
    compress: bool,
    encrypt: bool,
    sign: bool,
    key_id: str | None,
    keyring: str | None,
    crypto_backend: str | None,
) -> None:
    """Synchronize SOURCE into DEST.

    Either side may be a directory or a tar archive (.tar, .tar.gz, .tgz,
    optionally followed by .gpg for encryption).
    """
    source_path, dest_path = resolve_paths(source, dest, source_opt, dest_opt)
    config = load_config()
    configure_logging(verbose)

    try:
        policy = SyncPolicy(
            method=CompareMethod(_pick(method, config, "method", CompareMethod.MTIME.value)),
            checksum=checksum,
            recursive=recursive,
            delete=delete,
            dry_run=dry_run,
            threads=int(_pick(threads, config, "threads", DEFAULT_THREADS)),
            broken_links=BrokenLinkPolicy.SKIP if skip_broken_links else BrokenLinkPolicy.WARN,
            verbose=verbose,
        )
    except ValueError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e

    archive_options = ArchiveOptions(
        compress=compress,
        encrypt=encrypt,
        sign=sign,
        key_id=_pick(key_id, config, "key_id"),
        keyring=_pick(keyring, config, "keyring"),
    )
    backend = _pick(crypto_backend, config, "crypto", "gpg")

    try:
        endpoints = [
            resolve_endpoint(source_path, archive_options),
            resolve_endpoint(dest_path, archive_options),
        ]
        crypto = build_crypto(backend, archive_options, endpoints)

        if interactive and not dry_run:
            preview = Syncer(policy.with_changes(dry_run=True), archive_options, crypto)
            planned = preview.sync(source_path, dest_path)
            if planned.total_planned == 0:
                return
            if not click.confirm("Proceed with synchronization?", default=False):
                click.echo("Aborted.")
                return

        snapshot = Syncer(policy, archive_options, crypto).sync(source_path, dest_path)
    except SyncError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if snapshot.has_errors and not (verbose or dry_run):
        click.echo(
            f"Completed with {len(snapshot.errors)} errors (run with --verbose for details)",
            err=True,
        )
