"""Shared utility functions for tracktime."""

import time
from datetime import datetime

import dateparser


def now_ms() -> int:
    """Current wall-clock time in ms since the epoch."""
    return time.time_ns() // 1_000_000


def ms_to_datetime(ts: int) -> datetime:
    """Convert a ms timestamp to a naive datetime in local time."""
    return datetime.fromtimestamp(ts / 1000)


def datetime_to_ms(dt: datetime) -> int:
    """Convert a datetime to ms since the epoch.

    Naive datetimes are interpreted as local time.
    """
    return round(dt.timestamp() * 1000)


def parse_datetime(dt_string: str) -> datetime:
    """
    Parse a datetime string in various formats.

    Supports:
    - ISO format: "2025-01-01T09:00:00Z"
    - Relative dates: "yesterday", "today", "2 days ago"
    - Simple format: "2025-01-01 09:00" (interpreted as local time)

    Args:
        dt_string: DateTime string to parse

    Returns:
        Timezone-aware datetime object (local timezone)
    """
    dt = dateparser.parse(
        dt_string,
        settings={
            "RETURN_AS_TIMEZONE_AWARE": True,
            "TIMEZONE": "local",
        },
    )

    if dt is None:
        raise ValueError(f"Unable to parse datetime string: {dt_string}")

    return dt


def parse_datetime_ms(dt_string: str) -> int:
    """Parse a datetime string (see ``parse_datetime``) into ms since the epoch."""
    return datetime_to_ms(parse_datetime(dt_string))


def format_time(ms: int) -> str:
    """Format a duration in ms as H:MM:SS."""
    total_seconds = max(ms, 0) // 1000
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    return f"{hours}:{minutes:02d}:{seconds:02d}"


def format_duration(ms: int) -> str:
    """Format a duration in ms compactly, like "2h 30m", "2h" or "45m"."""
    total_minutes = max(ms, 0) // 60000
    hours = total_minutes // 60
    minutes = total_minutes % 60

    if hours > 0 and minutes > 0:
        return f"{hours}h {minutes}m"
    elif hours > 0:
        return f"{hours}h"
    return f"{minutes}m"


def format_compact_hour(ts: int) -> str:
    """Format a timestamp as a compact local hour label like "8a", "12p" or "5:30p"."""
    dt = ms_to_datetime(ts)
    hours = dt.hour
    suffix = "p" if hours >= 12 else "a"
    if hours == 0:
        hours = 12
    elif hours > 12:
        hours -= 12

    if dt.minute == 0:
        return f"{hours}{suffix}"
    return f"{hours}:{dt.minute:02d}{suffix}"


def ts2str(ts: int, format: str = "%Y-%m-%dT%H:%M:%S") -> str:
    """Format a ms timestamp as a string in the local timezone."""
    return ms_to_datetime(ts).strftime(format)

