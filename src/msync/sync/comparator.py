"""Decision rules for whether a source entry must be synced.

Given a source entry and the destination snapshot, this module decides
whether the executor has to act. Structural rules are checked first, then
the rule of the active comparison method.

Matrix:
| Situation                     | Method   | Sync?                               |
|-------------------------------|----------|-------------------------------------|
| missing in destination        | *        | yes                                 |
| file vs directory at one path | *        | yes (executor replaces the type)    |
| directory on both sides       | *        | no                                  |
| file on both sides            | size     | sizes differ                        |
| file on both sides            | checksum | digests differ (mtime rule if a     |
|                               |          | digest is missing, flagged degraded)|
| file on both sides            | mtime    | source newer OR sizes differ        |

The mtime rule prefers false positives: an extra copy is wasted work, a
missed change is a correctness bug.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from msync.core.types import CompareMethod
from msync.sync.types import FileEntry, PathMap


@dataclass(frozen=True)
class Decision:
    """Outcome of comparing one source entry against the destination.

    Attributes:
        needs_sync: Whether the executor must copy/create the entry.
        reason: Short human-readable explanation.
        degraded: True when the checksum method had to fall back to mtime.
    """

    needs_sync: bool
    reason: str
    degraded: bool = False


def _by_size(source: FileEntry, dest: FileEntry) -> Decision:
    if source.size != dest.size:
        return Decision(True, "size differs")
    return Decision(False, "same size")


def _by_mtime(source: FileEntry, dest: FileEntry) -> Decision:
    if source.mtime_ns > dest.mtime_ns:
        return Decision(True, "source is newer")
    if source.size != dest.size:
        return Decision(True, "size differs")
    return Decision(False, "destination is up to date")


def _by_checksum(source: FileEntry, dest: FileEntry) -> Decision:
    if source.checksum is not None and dest.checksum is not None:
        if source.checksum != dest.checksum:
            return Decision(True, "checksum differs")
        return Decision(False, "same checksum")

    # A missing digest is never "equal": compare metadata instead and say so
    fallback = _by_mtime(source, dest)
    return Decision(
        fallback.needs_sync,
        f"checksum unavailable, compared by mtime: {fallback.reason}",
        degraded=True,
    )


METHOD_RULES: dict[CompareMethod, Callable[[FileEntry, FileEntry], Decision]] = {
    CompareMethod.SIZE: _by_size,
    CompareMethod.CHECKSUM: _by_checksum,
    CompareMethod.MTIME: _by_mtime,
}


def compare(source: FileEntry, dest_map: PathMap, method: CompareMethod) -> Decision:
    """Decide whether a source entry must be synced.

    Pure function: the same inputs always give the same Decision.

    Args:
        source: Entry from the source snapshot.
        dest_map: Destination snapshot.
        method: Active comparison method.

    Returns:
        Decision with the verdict and its reason.
    """
    dest = dest_map.get(source.path)

    if dest is None:
        return Decision(True, "missing in destination")

    if source.is_dir != dest.is_dir:
        return Decision(True, "type mismatch")

    if source.is_dir:
        return Decision(False, "directory exists")

    return METHOD_RULES[CompareMethod(method)](source, dest)


def needs_sync(source: FileEntry, dest_map: PathMap, method: CompareMethod) -> bool:
    """Quick boolean form of compare()."""
    return compare(source, dest_map, method).needs_sync
