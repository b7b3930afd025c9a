"""Shared types for msync.

This module defines enums used by the sync engine, the archive layer and the CLI.
"""

from __future__ import annotations

from enum import Enum


class CompareMethod(str, Enum):
    """Policy used to decide whether a destination entry is stale.

    MTIME favours re-copying over missing a change: a newer source or a
    differing size both trigger a copy.
    """

    MTIME = "mtime"
    CHECKSUM = "checksum"
    SIZE = "size"


class BrokenLinkPolicy(str, Enum):
    """What the scanner does with a symlink whose target is unreachable."""

    SKIP = "skip"
    WARN = "warn"
