"""Storage backends for the event log and the settings.

The event log is append-only line-delimited JSON and is the only source of
truth: whether a timer is running is always derived by replaying it. This
module provides the EventStore ABC with a JSONL file implementation and an
in-memory one, the settings store, and the log rewrites used for deletions.
"""

import bisect
import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path

from .config import Settings, load_settings, save_settings
from .events import EventKind, TimerEvent, parse_event_lines

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the event log or the settings cannot be read or written."""

    pass


class EventStore(ABC):
    """Abstract base class for event log backends.

    Each operation is expected to either fully succeed or raise StorageError.
    """

    @abstractmethod
    def load_events(self) -> list[TimerEvent]:
        """Load the whole event log in log order.

        Malformed entries are skipped.
        """
        pass

    @abstractmethod
    def append_event(self, event: TimerEvent) -> None:
        """Durably append one event.

        Raises:
            StorageError: If the event could not be written
        """
        pass

    @abstractmethod
    def replace_events(self, events: list[TimerEvent]) -> None:
        """Durably replace the whole log (after a purge or an import).

        Raises:
            StorageError: If the log could not be rewritten
        """
        pass


class MemoryEventStore(EventStore):
    """Event store keeping the log in memory only.

    Useful for tests and for previewing changes without touching the disk.
    """

    def __init__(self, events: Iterable[TimerEvent] = ()) -> None:
        self.events: list[TimerEvent] = list(events)

    def load_events(self) -> list[TimerEvent]:
        return list(self.events)

    def append_event(self, event: TimerEvent) -> None:
        self.events.append(event)

    def replace_events(self, events: list[TimerEvent]) -> None:
        self.events = list(events)


class JsonlEventStore(EventStore):
    """Event store backed by a line-delimited JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load_events(self) -> list[TimerEvent]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                events = parse_event_lines(f)
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to load timer history from {self.path}: {e}") from e
        logger.debug(f"Loaded {len(events)} events from {self.path}")
        return events

    def append_event(self, event: TimerEvent) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(event.to_json() + "\n")
        except OSError as e:
            raise StorageError(f"Failed to save timer event to {self.path}: {e}") from e

    def replace_events(self, events: list[TimerEvent]) -> None:
        content = "".join(event.to_json() + "\n" for event in events)
        temp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(temp_path, self.path)
        except OSError as e:
            raise StorageError(f"Failed to rewrite timer history at {self.path}: {e}") from e


class SettingsStore:
    """Loads and saves the settings file."""

    def __init__(self, path: Path | None) -> None:
        self.path = Path(path) if path is not None else None

    def load(self) -> Settings:
        if self.path is None:
            return Settings()
        return load_settings(self.path)

    def save(self, settings: Settings) -> None:
        """Persist ``settings``. A store without a path keeps nothing.

        Raises:
            StorageError: If the settings could not be written
        """
        if self.path is None:
            return
        try:
            save_settings(self.path, settings)
        except OSError as e:
            raise StorageError(f"Failed to save settings to {self.path}: {e}") from e


def purge_timer_events(events: Iterable[TimerEvent], normalized_name: str) -> list[TimerEvent]:
    """Drop every start/pause of one timer. pause_all events are global and kept."""
    return [
        event
        for event in events
        if event.kind == EventKind.PAUSE_ALL or event.timer != normalized_name
    ]


def _find_covering_run(
    events: list[TimerEvent], timer: str, seg_start: int, seg_end: int
) -> tuple[list[int], int | None, int, int | None] | None:
    """Locate the run of ``timer`` that contains ``[seg_start, seg_end)``.

    Returns:
        Tuple of (start_indices, close_index, run_start, run_end), where
        start_indices are all start events of the run (repeated starts
        included), close_index is the index of the closing pause or pause_all
        (None while still running) and run_end is None for a running timer.
        None if no run covers the segment.
    """
    start_indices: list[int] = []
    run_start: int | None = None

    for i, event in enumerate(events):
        if event.kind == EventKind.START and event.timer == timer:
            start_indices.append(i)
            run_start = event.ts
            continue

        closes = event.kind == EventKind.PAUSE_ALL or (
            event.kind == EventKind.PAUSE and event.timer == timer
        )
        if not closes or run_start is None:
            continue

        if run_start <= seg_start and seg_end <= event.ts:
            return start_indices, i, run_start, event.ts
        start_indices = []
        run_start = None

    if run_start is not None and run_start <= seg_start:
        return start_indices, None, run_start, None
    return None


def delete_segment_events(
    events: list[TimerEvent], timer: str, seg_start: int, seg_end: int
) -> list[TimerEvent] | None:
    """Return a copy of ``events`` with ``[seg_start, seg_end)`` of ``timer`` removed.

    The segment may be a whole interval or a clipped part of one (for
    instance the part of an interval that falls inside a displayed day). Time
    before and after the segment is kept by inserting a pause at
    ``seg_start`` and a start at ``seg_end``. pause_all events are never
    removed since they apply to all timers.

    Returns:
        The rewritten event list, or None if no interval of ``timer`` covers
        the segment
    """
    if seg_end <= seg_start:
        return None

    found = _find_covering_run(events, timer, seg_start, seg_end)
    if found is None:
        return None
    start_indices, close_index, run_start, run_end = found

    keep_head = run_start < seg_start
    keep_tail = run_end is None or seg_end < run_end

    drop = set()
    if not keep_head:
        drop.update(start_indices)
    if not keep_tail and events[close_index].kind == EventKind.PAUSE:
        drop.add(close_index)

    result = [event for i, event in enumerate(events) if i not in drop]

    inserts = []
    if keep_head:
        inserts.append(TimerEvent.pause(seg_start, timer))
    if keep_tail:
        inserts.append(TimerEvent.start(seg_end, timer))
    for event in inserts:
        bisect.insort_right(result, event, key=lambda e: e.ts)

    return result
