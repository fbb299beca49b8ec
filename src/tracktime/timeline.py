"""Timeline of a single logical day, as colored segments.

Segments are clipped to the logical day. The returned ``day_start``/``day_end``
are a display window trimmed to the hours that actually contain activity, so
that a few hours of work are not drawn on a mostly empty 24h bar.
"""

from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from typing import Any

from .config import Settings
from .days import floor_to_hour, get_day_range, next_hour
from .intervals import ProcessedEvents, calculate_overlap
from .timer_state import get_timer_color, get_timer_colors


@dataclass
class TimelineSegment:
    """A span of one timer within the displayed day."""

    timer: str
    display_name: str
    start: int
    end: int
    color: str

    @property
    def duration(self) -> int:
        return self.end - self.start


@dataclass
class TimelineData:
    """Segments of a day plus the window they should be drawn in.

    Attributes:
        day_start: Start of the display window (ms)
        day_end: End of the display window (ms)
        segments: Segments sorted by start
        timer_colors: Colors of all timers
        is_today: The timeline is for the logical day containing now
    """

    day_start: int
    day_end: int
    segments: list[TimelineSegment] = field(default_factory=list)
    timer_colors: dict[str, str] = field(default_factory=dict)
    is_today: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _clipped_segment(
    timer: str,
    start: int,
    end: int,
    day_start: int,
    day_end: int,
    display_name: Callable[[str], str],
    color_order: list[str],
) -> TimelineSegment | None:
    if calculate_overlap(start, end, day_start, day_end) <= 0:
        return None
    return TimelineSegment(
        timer=timer,
        display_name=display_name(timer),
        start=max(start, day_start),
        end=min(end, day_end),
        color=get_timer_color(timer, color_order),
    )


def get_display_window(
    segments: list[TimelineSegment], day_start: int, day_end: int, is_today: bool, now: int
) -> tuple[int, int]:
    """Trim ``[day_start, day_end)`` to the hours containing ``segments``.

    The window starts at the hour of the first segment. It ends at the hour
    after ``now`` for today, or at the hour after the last segment for past
    days, never past ``day_end``. A degenerate window falls back to the whole
    day.
    """
    if not segments:
        return day_start, day_end

    effective_start = floor_to_hour(segments[0].start)
    if is_today:
        effective_end = min(next_hour(now), day_end)
    else:
        effective_end = min(next_hour(segments[-1].end), day_end)

    if effective_end <= effective_start:
        return day_start, day_end
    return effective_start, effective_end


def get_timeline_for_date(
    processed: ProcessedEvents,
    color_order: list[str],
    settings: Settings,
    display_name: Callable[[str], str],
    now: int,
    date_ts: int | None = None,
) -> TimelineData:
    """Build the timeline of the logical day containing ``date_ts`` (default: today).

    Running timers are drawn up to ``now``, only on today's timeline.
    """
    target = now if date_ts is None else date_ts
    day_start, day_end = get_day_range(target, settings.day_start_hour, settings.day_start_minute)
    is_today = date_ts is None or day_start <= now < day_end

    segments = []
    for timer, intervals in processed.intervals.items():
        for interval in intervals:
            segment = _clipped_segment(
                timer, interval.start, interval.end, day_start, day_end, display_name, color_order
            )
            if segment is not None:
                segments.append(segment)

    if is_today:
        for timer, start_ts in processed.active_timers.items():
            segment = _clipped_segment(
                timer, start_ts, now, day_start, day_end, display_name, color_order
            )
            if segment is not None:
                segments.append(segment)

    segments.sort(key=lambda s: s.start)

    window_start, window_end = get_display_window(segments, day_start, day_end, is_today, now)

    return TimelineData(
        day_start=window_start,
        day_end=window_end,
        segments=segments,
        timer_colors=get_timer_colors(color_order),
        is_today=is_today,
    )
