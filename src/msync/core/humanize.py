"""Human-readable formatting of byte counts and durations."""

from __future__ import annotations

_UNITS = ["KB", "MB", "GB", "TB", "PB"]


def format_bytes(num_bytes: int) -> str:
    """Format a byte count with binary units, e.g. 1536 -> '1.5 KB'."""
    if num_bytes < 1024:
        return f"{num_bytes} B"
    value = float(num_bytes)
    for unit in _UNITS:
        value /= 1024
        if value < 1024 or unit == _UNITS[-1]:
            return f"{value:.1f} {unit}"
    return f"{value:.1f} {_UNITS[-1]}"


def format_duration(seconds: float) -> str:
    """Format seconds as '4.2s', '3m 5.0s' or '1h 2m 3.0s'."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds // 60)
    secs = seconds - minutes * 60
    if minutes < 60:
        return f"{minutes}m {secs:.1f}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m {secs:.1f}s"
