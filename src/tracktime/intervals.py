"""Interval building and per-day accounting over the timer event log.

All derived views are computed from two primitives defined here:

- ``build_timer_intervals`` / ``apply_event`` replay the log into completed
  intervals plus the set of timers that are still running.
- ``calculate_overlap`` clips a span against a range. Every per-day figure is
  a sum of overlaps, so day totals and per-timer totals always agree.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass, field

from .events import EventKind, TimerEvent


@dataclass(frozen=True)
class Interval:
    """A completed ``[start, end)`` span during which one timer was running."""

    start: int
    end: int

    @property
    def duration(self) -> int:
        return self.end - self.start


@dataclass
class ProcessedEvents:
    """Result of replaying the event log.

    Attributes:
        intervals: Completed intervals per timer, in log order
        active_timers: Running timers mapped to the ts of their open start,
            in the order they were started
    """

    intervals: dict[str, list[Interval]] = field(default_factory=dict)
    active_timers: dict[str, int] = field(default_factory=dict)

    def timer_names(self) -> list[str]:
        """All timers with history or currently running, without duplicates."""
        names = list(self.intervals)
        names.extend(t for t in self.active_timers if t not in self.intervals)
        return names

    def copy(self) -> "ProcessedEvents":
        return ProcessedEvents(
            intervals={t: list(ivs) for t, ivs in self.intervals.items()},
            active_timers=dict(self.active_timers),
        )


def _push_interval(processed: ProcessedEvents, timer: str, start: int, end: int) -> None:
    processed.intervals.setdefault(timer, []).append(Interval(start, end))


def apply_event(processed: ProcessedEvents, event: TimerEvent) -> None:
    """Apply a single event to ``processed`` in place.

    - start: marks the timer as running. A second start without a pause in
      between simply moves the start time.
    - pause: closes the running interval. Pausing a timer that is not running
      is a no-op.
    - pause_all: closes every running interval at the event time.
    """
    if event.kind == EventKind.START:
        processed.active_timers[event.timer] = event.ts
    elif event.kind == EventKind.PAUSE:
        start_ts = processed.active_timers.pop(event.timer, None)
        if start_ts is not None:
            _push_interval(processed, event.timer, start_ts, event.ts)
    elif event.kind == EventKind.PAUSE_ALL:
        for timer, start_ts in processed.active_timers.items():
            _push_interval(processed, timer, start_ts, event.ts)
        processed.active_timers.clear()


def build_timer_intervals(events: Iterable[TimerEvent]) -> ProcessedEvents:
    """Replay the whole event log, in log order."""
    processed = ProcessedEvents()
    for event in events:
        apply_event(processed, event)
    return processed


def calculate_overlap(start: int, end: int, range_start: int, range_end: int) -> int:
    """Return how much of ``[start, end)`` falls inside ``[range_start, range_end)``."""
    overlap_start = max(start, range_start)
    overlap_end = min(end, range_end)
    return overlap_end - overlap_start if overlap_start < overlap_end else 0


def sum_intervals_per_timer_for_day(
    processed: ProcessedEvents,
    day_start: int,
    day_end: int,
    include_active: bool,
    now: int,
) -> dict[str, int]:
    """Sum time per timer within ``[day_start, day_end)``.

    Timers with no time in the range are left out. Running timers count up to
    ``now`` when ``include_active`` is set.
    """
    per_timer: dict[str, int] = {}

    for timer, intervals in processed.intervals.items():
        total = 0
        for interval in intervals:
            total += calculate_overlap(interval.start, interval.end, day_start, day_end)
        if total > 0:
            per_timer[timer] = total

    if include_active:
        for timer, start_ts in processed.active_timers.items():
            overlap = calculate_overlap(start_ts, now, day_start, day_end)
            if overlap > 0:
                per_timer[timer] = per_timer.get(timer, 0) + overlap

    return per_timer


def sum_total_for_day(
    processed: ProcessedEvents,
    day_start: int,
    day_end: int,
    include_active: bool,
    now: int,
) -> int:
    """Total time across all timers for a day range."""
    return sum(
        sum_intervals_per_timer_for_day(processed, day_start, day_end, include_active, now).values()
    )


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def compute_trend(today_value: int, previous_day_values: list[int], days_from_monday: int) -> int:
    """Percentage of today's value against the average of earlier days this week.

    The average divides by ``days_from_monday`` rather than by the number of
    values passed in: days without any activity still count.
    """
    if days_from_monday == 0:
        return 0
    if not previous_day_values:
        return 100 if today_value > 0 else 0

    previous_avg = sum(previous_day_values) / days_from_monday
    if previous_avg == 0:
        return 100 if today_value > 0 else 0

    return _round_half_up((today_value - previous_avg) / previous_avg * 100)
