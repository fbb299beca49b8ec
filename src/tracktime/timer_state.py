"""Timer state: the read model shown by every front-end.

``compute_timer_state`` turns replayed intervals into per-timer figures for
the current logical day, weekly totals and trends, and stable timer colors.
It is a pure function of its inputs; caching lives in ``tracktime.cache``.
"""

from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from typing import Any

from .config import Settings
from .days import get_day_range, get_days_from_monday, previous_days_this_week
from .intervals import ProcessedEvents, compute_trend, sum_intervals_per_timer_for_day

TIMER_COLORS: list[str] = [
    "#4a9eff",  # blue
    "#4ade80",  # green
    "#f472b6",  # pink
    "#fbbf24",  # amber
    "#a78bfa",  # purple
    "#22d3d3",  # cyan
    "#fb923c",  # orange
    "#f87171",  # red
]

DisplayNameResolver = Callable[[str], str]


@dataclass
class TimerInfo:
    """Per-timer figures for the current logical day and week."""

    name: str
    display_name: str
    elapsed_today: int
    is_running: bool
    weekly_total: int = 0
    weekly_trend: int = 0


@dataclass
class TimerState:
    """Whole-app view: sorted timers, running timers, totals and colors."""

    timers: list[TimerInfo] = field(default_factory=list)
    running_timers: list[str] = field(default_factory=list)
    total_today: int = 0
    weekly_trend: int = 0
    timer_colors: dict[str, str] = field(default_factory=dict)

    def get_timer(self, name: str) -> TimerInfo | None:
        for timer in self.timers:
            if timer.name == name:
                return timer
        return None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def get_timer_colors(color_order: list[str]) -> dict[str, str]:
    """Assign palette colors by position of each timer's first-ever start."""
    return {timer: TIMER_COLORS[i % len(TIMER_COLORS)] for i, timer in enumerate(color_order)}


def get_timer_color(timer: str, color_order: list[str]) -> str:
    try:
        index = color_order.index(timer)
    except ValueError:
        return TIMER_COLORS[0]
    return TIMER_COLORS[index % len(TIMER_COLORS)]


def sort_timers(timers: list[TimerInfo], timer_order: list[str]) -> list[TimerInfo]:
    """Sort timers by their explicit position in ``timer_order``.

    Timers missing from ``timer_order`` come first, busiest today first, so
    that newly created timers show up at the top until they are arranged.
    """
    positions: dict[str, int] = {}
    for i, name in enumerate(timer_order):
        # First occurrence wins for duplicated entries
        positions.setdefault(name, i)

    def sort_key(timer: TimerInfo) -> tuple[int, int]:
        if timer.name in positions:
            return (1, positions[timer.name])
        return (0, -timer.elapsed_today)

    return sorted(timers, key=sort_key)


def calculate_weekly_trend(processed: ProcessedEvents, today_start: int, total_today: int, now: int) -> int:
    """Today's total against the average of the earlier days of this week."""
    days_from_monday = get_days_from_monday(today_start)
    if days_from_monday == 0:
        return 0

    previous_day_totals = [
        sum(sum_intervals_per_timer_for_day(processed, start, end, False, now).values())
        for start, end in previous_days_this_week(today_start)
    ]
    return compute_trend(total_today, previous_day_totals, days_from_monday)


def calculate_per_timer_weekly_stats(
    processed: ProcessedEvents, today_start: int, today_end: int, now: int
) -> tuple[dict[str, int], dict[str, int]]:
    """Weekly totals (Monday through today) and trends for every timer.

    Returns:
        Tuple of (weekly_totals, weekly_trends) keyed by timer name
    """
    days_from_monday = get_days_from_monday(today_start)
    today_totals = sum_intervals_per_timer_for_day(processed, today_start, today_end, True, now)

    weekly_totals = dict(today_totals)
    previous_day_totals: dict[str, list[int]] = {}

    for start, end in previous_days_this_week(today_start):
        day_totals = sum_intervals_per_timer_for_day(processed, start, end, False, now)
        for timer, ms in day_totals.items():
            weekly_totals[timer] = weekly_totals.get(timer, 0) + ms
            previous_day_totals.setdefault(timer, []).append(ms)

    weekly_trends = {}
    for timer in {*today_totals, *previous_day_totals}:
        weekly_trends[timer] = compute_trend(
            today_totals.get(timer, 0), previous_day_totals.get(timer, []), days_from_monday
        )

    return weekly_totals, weekly_trends


def compute_timer_state(
    processed: ProcessedEvents,
    color_order: list[str],
    settings: Settings,
    display_name: DisplayNameResolver,
    now: int,
) -> TimerState:
    """Build the full timer state for the logical day containing ``now``.

    Args:
        processed: Replayed event log
        color_order: Timers in order of their first-ever start
        settings: Current settings (day boundary and timer order)
        display_name: Resolves a normalized timer name to its display name
        now: Current time in ms

    Returns:
        TimerState with timers sorted per ``settings.timer_order``
    """
    today_start, today_end = get_day_range(now, settings.day_start_hour, settings.day_start_minute)
    today_totals = sum_intervals_per_timer_for_day(processed, today_start, today_end, True, now)

    timers = [
        TimerInfo(
            name=name,
            display_name=display_name(name),
            elapsed_today=today_totals.get(name, 0),
            is_running=name in processed.active_timers,
        )
        for name in processed.timer_names()
    ]
    timers = sort_timers(timers, settings.timer_order)

    running_timers = list(processed.active_timers)
    total_today = sum(t.elapsed_today for t in timers)
    weekly_trend = calculate_weekly_trend(processed, today_start, total_today, now)

    weekly_totals, weekly_trends = calculate_per_timer_weekly_stats(
        processed, today_start, today_end, now
    )
    for timer in timers:
        timer.weekly_total = weekly_totals.get(timer.name, 0)
        timer.weekly_trend = weekly_trends.get(timer.name, 0)

    return TimerState(
        timers=timers,
        running_timers=running_timers,
        total_today=total_today,
        weekly_trend=weekly_trend,
        timer_colors=get_timer_colors(color_order),
    )


def get_tray_icon_index(state: TimerState) -> int | None:
    """Tray icon number for a state.

    None when nothing runs, 0 (generic icon) when several timers run, otherwise
    the 1-based position of the running timer in the sorted timer list.
    """
    if not state.running_timers:
        return None
    if len(state.running_timers) > 1:
        return 0
    for i, timer in enumerate(state.timers):
        if timer.name == state.running_timers[0]:
            return i + 1
    return None
