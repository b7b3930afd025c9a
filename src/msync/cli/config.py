"""Configuration utilities for the msync CLI.

This module provides shared configuration functions used across CLI commands.

The config file is JSON, for example:
    {
      "threads": 8,
      "method": "checksum",
      "crypto": "gpg",
      "key_id": "backup@example.com",
      "keyring": "~/.gnupg/backup.kbx"
    }
Command-line flags always win over these values.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import click

CONFIG_DIR_ENV = "MSYNC_CONFIG_DIR"
PASSPHRASE_ENV = "MSYNC_PASSPHRASE"

logger = logging.getLogger(__name__)


def get_config_dir() -> Path:
    """Get the configuration directory for msync.

    Returns:
        $MSYNC_CONFIG_DIR if set, ~/.msync otherwise.
    """
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".msync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, Any]:
    """Load configuration from config file.

    Raises:
        click.ClickException: If the file exists but is not a JSON object.
    """
    config_file = get_config_file()
    if not config_file.exists():
        return {}
    try:
        data = json.loads(config_file.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise click.ClickException(f"Invalid config file {config_file}: {e}") from e
    if not isinstance(data, dict):
        raise click.ClickException(f"Invalid config file {config_file}: expected a JSON object")
    logger.debug(f"Loaded config from {config_file}")
    return data


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


class ClickEchoHandler(logging.Handler):
    """Logging handler that writes records to stderr through click.echo."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            click.echo(self.format(record), err=True)
        except Exception:
            self.handleError(record)


def configure_logging(verbose: bool) -> None:
    """Route the msync loggers to the terminal.

    Verbose runs show every operation and every soft error as it happens;
    otherwise only errors are printed.
    """
    msync_logger = logging.getLogger("msync")
    for handler in msync_logger.handlers[:]:
        msync_logger.removeHandler(handler)

    handler = ClickEchoHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    msync_logger.addHandler(handler)
    msync_logger.setLevel(logging.INFO if verbose else logging.ERROR)
    msync_logger.propagate = False
