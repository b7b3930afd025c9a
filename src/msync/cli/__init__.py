"""Command-line interface for msync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- sync: Synchronize a source into a destination (directories or archives)
- ls: List the entries of an archive
"""

from __future__ import annotations

import click

from msync import __version__
from msync.cli.archive import ls
from msync.cli.config import (
    configure_logging,
    get_config_dir,
    get_config_file,
    load_config,
    save_config,
)
from msync.cli.sync import sync


@click.group()
@click.version_option(version=__version__, prog_name="msync")
def cli() -> None:
    """msync - local file-tree synchronization with archive support."""


# Sync commands
cli.add_command(sync)

# Archive commands
cli.add_command(ls)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "configure_logging",
    "get_config_dir",
    "get_config_file",
    "load_config",
    "save_config",
]
