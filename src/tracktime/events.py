"""Timer events: the append-only log records everything else is derived from.

A log line is a single JSON object of the form::

    {"event": "start" | "pause" | "pause_all", "ts": <int ms>, "timer": <str>}

``timer`` is absent for ``pause_all``. Field names and values are kept exactly
as they appear on disk so that records round-trip without translation.
"""

import json
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """Kinds of state transitions in the event log."""

    START = "start"
    PAUSE = "pause"
    PAUSE_ALL = "pause_all"


@dataclass(frozen=True)
class TimerEvent:
    """A single timestamped state transition.

    ``timer`` is None only for PAUSE_ALL events.
    """

    kind: EventKind
    ts: int
    timer: str | None = None

    @classmethod
    def start(cls, ts: int, timer: str) -> "TimerEvent":
        return cls(EventKind.START, ts, timer)

    @classmethod
    def pause(cls, ts: int, timer: str) -> "TimerEvent":
        return cls(EventKind.PAUSE, ts, timer)

    @classmethod
    def pause_all(cls, ts: int) -> "TimerEvent":
        return cls(EventKind.PAUSE_ALL, ts)

    def to_dict(self) -> dict[str, Any]:
        """Return the on-disk record for this event."""
        record: dict[str, Any] = {"event": self.kind.value, "ts": self.ts}
        if self.kind != EventKind.PAUSE_ALL:
            record["timer"] = self.timer
        return record

    @classmethod
    def from_dict(cls, record: dict[str, Any]) -> "TimerEvent":
        """Build an event from an on-disk record.

        Raises:
            ValueError: If the record is not a valid event
        """
        if not isinstance(record, dict):
            raise ValueError(f"Event record must be an object, got {type(record).__name__}")
        try:
            kind = EventKind(record.get("event"))
        except ValueError:
            raise ValueError(f"Unknown event type: {record.get('event')!r}") from None

        ts = record.get("ts")
        # bool is an int subclass but never a valid timestamp
        if isinstance(ts, bool) or not isinstance(ts, (int, float)):
            raise ValueError(f"Event timestamp must be a number, got {ts!r}")
        if not math.isfinite(ts):
            raise ValueError(f"Event timestamp must be finite, got {ts!r}")

        if kind == EventKind.PAUSE_ALL:
            return cls(kind, int(ts))

        timer = record.get("timer")
        if not isinstance(timer, str) or not timer.strip():
            raise ValueError(f"Event '{kind.value}' requires a timer name, got {timer!r}")
        return cls(kind, int(ts), timer)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


def parse_event_line(line: str) -> TimerEvent | None:
    """Parse one line of the event log.

    Blank, corrupt or otherwise invalid lines yield None so that a damaged
    log can still be loaded.
    """
    line = line.strip()
    if not line:
        return None
    try:
        return TimerEvent.from_dict(json.loads(line))
    except ValueError as e:
        # json.JSONDecodeError is a ValueError subclass
        logger.debug(f"Skipping malformed event line: {e}")
        return None


def parse_event_lines(lines) -> list[TimerEvent]:
    """Parse an iterable of log lines, skipping the malformed ones."""
    events = []
    for line in lines:
        event = parse_event_line(line)
        if event is not None:
            events.append(event)
    return events


def normalize_timer_name(name: str) -> str:
    """Return the identity of a timer: trimmed and lower-cased."""
    return name.strip().lower()
