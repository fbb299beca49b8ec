"""
Shared fixtures and builders for the tracktime tests.

Times in tests are written as local wall-clock datetimes and converted with
``local_ms`` so that day boundaries behave the same in every time zone. The
default "now" is Wednesday 2025-01-08 12:00 local time; the surrounding week
starts on Monday 2025-01-06.
"""

from datetime import datetime

import pytest

from tracktime.config import Settings
from tracktime.events import TimerEvent
from tracktime.storage import MemoryEventStore, SettingsStore, StorageError
from tracktime.tracker import Tracker
from tracktime.utils import datetime_to_ms

HOUR = 3_600_000
MINUTE = 60_000


def local_ms(year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0) -> int:
    """Local wall-clock time as ms since the epoch."""
    return datetime_to_ms(datetime(year, month, day, hour, minute, second))


class FakeClock:
    """Controllable clock returning ms since the epoch."""

    def __init__(self, now: int) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def set(self, now: int) -> None:
        self.now = now

    def advance(self, hours: int = 0, minutes: int = 0, seconds: int = 0, ms: int = 0) -> int:
        self.now += hours * HOUR + minutes * MINUTE + seconds * 1000 + ms
        return self.now


class EventLogBuilder:
    """
    Builder class for creating event logs.

    Example:
        >>> events = (EventLogBuilder()
        ...     .start("work", local_ms(2025, 1, 8, 9))
        ...     .pause("work", local_ms(2025, 1, 8, 10))
        ...     .build())
    """

    def __init__(self) -> None:
        self.events: list[TimerEvent] = []

    def start(self, timer: str, ts: int) -> "EventLogBuilder":
        self.events.append(TimerEvent.start(ts, timer))
        return self

    def pause(self, timer: str, ts: int) -> "EventLogBuilder":
        self.events.append(TimerEvent.pause(ts, timer))
        return self

    def pause_all(self, ts: int) -> "EventLogBuilder":
        self.events.append(TimerEvent.pause_all(ts))
        return self

    def work(self, timer: str, start: int, end: int) -> "EventLogBuilder":
        """Add a completed interval."""
        return self.start(timer, start).pause(timer, end)

    def build(self) -> list[TimerEvent]:
        return list(self.events)


class FailingEventStore(MemoryEventStore):
    """Memory store whose writes fail while ``fail`` is set."""

    def __init__(self, events=()) -> None:
        super().__init__(events)
        self.fail = False

    def append_event(self, event: TimerEvent) -> None:
        if self.fail:
            raise StorageError("disk full")
        super().append_event(event)

    def replace_events(self, events: list[TimerEvent]) -> None:
        if self.fail:
            raise StorageError("disk full")
        super().replace_events(events)


class FailingSettingsStore(SettingsStore):
    """Settings store whose saves always fail."""

    def __init__(self) -> None:
        super().__init__(None)

    def save(self, settings: Settings) -> None:
        raise StorageError("read-only file system")


@pytest.fixture
def now() -> int:
    return local_ms(2025, 1, 8, 12)


@pytest.fixture
def clock(now) -> FakeClock:
    return FakeClock(now)


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def event_store() -> MemoryEventStore:
    return MemoryEventStore()


@pytest.fixture
def tracker(event_store, clock) -> Tracker:
    """A tracker on an in-memory event log and settings that are never written."""
    return Tracker(event_store, SettingsStore(None), clock=clock)
