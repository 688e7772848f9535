"""Human-readable rendering of cache statistics."""

from __future__ import annotations

from .models import CacheStatistics

_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_bytes(size: float) -> str:
    """Format a byte count with a binary unit, e.g. 1536 -> "1.5 KB".

    Args:
        size: Number of bytes (negative values are treated as 0)

    Returns:
        Size with up to one decimal place
    """
    size = max(float(size), 0.0)
    unit = 0
    while size >= 1024 and unit < len(_UNITS) - 1:
        size /= 1024
        unit += 1
    if unit == 0:
        return f"{int(size)} B"
    return f"{size:.1f} {_UNITS[unit]}"


def format_duration(seconds: float) -> str:
    """Format an age in seconds as its two largest units, e.g. "2h 5m"."""
    seconds = int(max(seconds, 0))
    days, rem = divmod(seconds, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)

    if days:
        return f"{days}d {hours}h"
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_statistics(stats: CacheStatistics) -> str:
    lines = [
        "Detection Cache Statistics",
        f"  Location:        {stats.location or 'N/A'}",
        f"  Entries:         {stats.total_entries}",
        f"  Size:            {format_bytes(stats.cache_size)}",
        f"  Hit rate:        {stats.hit_rate * 100:.1f}% "
        f"({stats.total_hits} hits, {stats.total_misses} misses)",
        f"  Average age:     {format_duration(stats.average_age)}",
        f"  Oldest entry:    {format_duration(stats.oldest_entry)}",
    ]
    if stats.most_frequent_key:
        lines.append(f"  Most accessed:   {stats.most_frequent_key}")
    return "\n".join(lines)
