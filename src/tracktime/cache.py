"""Incremental cache over the event log and the views derived from it.

Three tiers, each with explicit invalidation:

- Tier 1, the event list: loaded lazily from the event store, then kept in
  memory. ``on_event_appended`` and ``on_events_replaced`` keep it in sync
  with what was written to the store.
- Tier 2, derived structures: replayed intervals and the color order are
  patched in O(1) for each appended event and rebuilt after a bulk replace.
  The timer state is recomputed on the next read after any change, and also
  when the logical day has rolled over since it was computed.
- Tier 3, the tray snapshot: a tiny projection of the timer state from which
  a once-per-second display can extrapolate the running timer's elapsed time
  without recomputing anything.

An EventCache has a single writer. Readers such as a display tick only call
the ``get_*`` methods and ``TraySnapshot.current_elapsed``.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from .config import Settings
from .days import get_day_start
from .events import EventKind, TimerEvent
from .intervals import ProcessedEvents, apply_event, build_timer_intervals
from .storage import EventStore
from .timeline import TimelineData, get_timeline_for_date
from .timer_state import TimerState, compute_timer_state, get_tray_icon_index
from .utils import now_ms

logger = logging.getLogger(__name__)


@dataclass
class TraySnapshot:
    """Minimal projection of a timer state for live tray/clock display.

    Attributes:
        running_timers: Running timers at snapshot time
        primary_display_name: Display name of the first running timer, or ""
        primary_elapsed_at_snapshot: Its elapsed time today at snapshot time (ms)
        snapshot_time: When the snapshot was taken (ms)
        tray_icon_index: See ``get_tray_icon_index``
    """

    running_timers: list[str] = field(default_factory=list)
    primary_display_name: str = ""
    primary_elapsed_at_snapshot: int = 0
    snapshot_time: int = 0
    tray_icon_index: int | None = None

    @classmethod
    def from_state(cls, state: TimerState, snapshot_time: int) -> "TraySnapshot":
        primary_display_name = ""
        primary_elapsed = 0
        if state.running_timers:
            primary = state.running_timers[0]
            info = state.get_timer(primary)
            primary_display_name = info.display_name if info else primary
            primary_elapsed = info.elapsed_today if info else 0

        return cls(
            running_timers=list(state.running_timers),
            primary_display_name=primary_display_name,
            primary_elapsed_at_snapshot=primary_elapsed,
            snapshot_time=snapshot_time,
            tray_icon_index=get_tray_icon_index(state),
        )

    @property
    def is_running(self) -> bool:
        return bool(self.running_timers)

    def current_elapsed(self, now: int) -> int:
        """Elapsed time of the primary timer at ``now``, extrapolated from the snapshot."""
        if not self.running_timers:
            return self.primary_elapsed_at_snapshot
        return self.primary_elapsed_at_snapshot + max(now - self.snapshot_time, 0)


class EventCache:
    """Cache controller owned by the application's composition root.

    Args:
        event_store: Source of the event log for the initial (and any forced) load
        get_settings: Returns the current settings
        display_name: Resolves a normalized timer name to its display name
        clock: Returns the current time in ms
    """

    def __init__(
        self,
        event_store: EventStore,
        get_settings: Callable[[], Settings],
        display_name: Callable[[str], str],
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.event_store = event_store
        self.get_settings = get_settings
        self.display_name = display_name
        self.clock = clock

        self._events: list[TimerEvent] | None = None
        self._processed: ProcessedEvents | None = None
        self._color_order: list[str] | None = None
        self._timer_state: TimerState | None = None
        self._timer_state_time: int = 0
        self._tray_snapshot: TraySnapshot | None = None

    # Tier 1

    def get_events(self) -> list[TimerEvent]:
        if self._events is None:
            self._events = self.event_store.load_events()
            logger.debug(f"Event cache loaded {len(self._events)} events")
        return self._events

    def on_event_appended(self, event: TimerEvent) -> None:
        """Record an event that has been appended to the store."""
        if self._events is None:
            # Not loaded yet; the next load reads it from the store
            self.invalidate_derived()
            return
        self._events.append(event)
        if self._processed is not None:
            apply_event(self._processed, event)
        if self._color_order is not None:
            self._update_color_order(event)
        self.invalidate_derived()

    def on_events_replaced(self, events: list[TimerEvent]) -> None:
        """Record that the store's log was replaced (purge, import, segment deletion).

        Historical entries may have changed, so every derived structure is
        discarded rather than patched.
        """
        self._events = list(events)
        self._processed = None
        self._color_order = None
        self.invalidate_derived()
        logger.debug(f"Event cache replaced with {len(self._events)} events")

    def on_settings_changed(self) -> None:
        """Record a settings change that affects the derived views.

        Day boundaries, timer order and display names all show up in the
        timer state; intervals and colors do not depend on settings.
        """
        self.invalidate_derived()

    def invalidate_all(self) -> None:
        """Forget everything, including the event list; the next read reloads the store."""
        self._events = None
        self._processed = None
        self._color_order = None
        self.invalidate_derived()

    def invalidate_derived(self) -> None:
        self._timer_state = None
        self._tray_snapshot = None

    # Tier 2

    def get_processed_events(self) -> ProcessedEvents:
        if self._processed is None:
            self._processed = build_timer_intervals(self.get_events())
            logger.debug("Rebuilt timer intervals from the full event log")
        return self._processed

    def _update_color_order(self, event: TimerEvent) -> None:
        if event.kind == EventKind.START and event.timer not in self._color_order:
            self._color_order.append(event.timer)

    def get_color_order(self) -> list[str]:
        if self._color_order is None:
            self._color_order = []
            for event in self.get_events():
                self._update_color_order(event)
        return self._color_order

    def _is_stale(self, now: int) -> bool:
        settings = self.get_settings()
        hour, minute = settings.day_start_hour, settings.day_start_minute
        return get_day_start(self._timer_state_time, hour, minute) != get_day_start(now, hour, minute)

    def get_timer_state(self) -> TimerState:
        """Return the cached timer state, recomputing it if invalidated or from another day."""
        now = self.clock()
        if self._timer_state is not None and self._is_stale(now):
            logger.debug("Logical day rolled over, discarding cached timer state")
            self.invalidate_derived()

        if self._timer_state is None:
            self._timer_state = compute_timer_state(
                self.get_processed_events(),
                self.get_color_order(),
                self.get_settings(),
                self.display_name,
                now,
            )
            self._timer_state_time = now
            self._tray_snapshot = TraySnapshot.from_state(self._timer_state, now)
        return self._timer_state

    def get_running_timers(self) -> list[str]:
        """Running timers, in the order they were started, without computing the full state."""
        return list(self.get_processed_events().active_timers)

    def get_timeline(self, date_ts: int | None = None) -> TimelineData:
        return get_timeline_for_date(
            self.get_processed_events(),
            self.get_color_order(),
            self.get_settings(),
            self.display_name,
            self.clock(),
            date_ts,
        )

    # Tier 3

    def get_tray_snapshot(self) -> TraySnapshot:
        if self._tray_snapshot is None:
            self.get_timer_state()
        return self._tray_snapshot
