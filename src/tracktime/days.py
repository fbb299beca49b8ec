"""Day and week arithmetic for logical days.

A logical day runs from ``day_start_hour:day_start_minute`` local time to the
same wall-clock time on the next calendar day. All calendar arithmetic is done
on naive local datetimes so that adding a day follows the calendar (23 or 25
hours across a DST change) rather than a fixed 24 hours.
"""

from datetime import timedelta

from .utils import datetime_to_ms, ms_to_datetime


def get_day_start(ts: int, day_start_hour: int = 0, day_start_minute: int = 0) -> int:
    """Return the start of the logical day containing ``ts``.

    Args:
        ts: Timestamp in ms
        day_start_hour: Hour at which a logical day begins
        day_start_minute: Minute at which a logical day begins

    Returns:
        Start of the logical day in ms
    """
    dt = ms_to_datetime(ts)
    day_start = dt.replace(hour=day_start_hour, minute=day_start_minute, second=0, microsecond=0)
    if dt < day_start:
        day_start -= timedelta(days=1)
    return datetime_to_ms(day_start)


def get_day_end(day_start: int) -> int:
    """Return the end of the logical day starting at ``day_start`` (one calendar day later)."""
    return shift_days(day_start, 1)


def shift_days(ts: int, days: int) -> int:
    """Move ``ts`` by whole calendar days, keeping the local wall-clock time."""
    return datetime_to_ms(ms_to_datetime(ts) + timedelta(days=days))


def get_day_range(
    ts: int, day_start_hour: int = 0, day_start_minute: int = 0
) -> tuple[int, int]:
    """Return ``(day_start, day_end)`` of the logical day containing ``ts``."""
    day_start = get_day_start(ts, day_start_hour, day_start_minute)
    return day_start, get_day_end(day_start)


def get_days_from_monday(ts: int) -> int:
    """Days elapsed since Monday: 0 on Monday, 6 on Sunday."""
    return ms_to_datetime(ts).weekday()


def previous_days_this_week(day_start: int) -> list[tuple[int, int]]:
    """Day ranges from yesterday back to Monday of the week of ``day_start``.

    Returns an empty list on Mondays.
    """
    ranges = []
    for i in range(1, get_days_from_monday(day_start) + 1):
        start = shift_days(day_start, -i)
        ranges.append((start, get_day_end(start)))
    return ranges


def floor_to_hour(ts: int) -> int:
    """Round ``ts`` down to the start of its local hour."""
    return datetime_to_ms(ms_to_datetime(ts).replace(minute=0, second=0, microsecond=0))


def next_hour(ts: int) -> int:
    """Return the local hour boundary following the hour containing ``ts``."""
    floored = ms_to_datetime(floor_to_hour(ts))
    return datetime_to_ms(floored + timedelta(hours=1))
