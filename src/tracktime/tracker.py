"""Timer actions and the composition root of tracktime.

The Tracker owns the settings, the event store and the event cache, and is
the single writer for all of them. Every change is written to storage first
and only applied to the in-memory cache once the write succeeded, so the
cache never runs ahead of what is on disk. Storage failures are logged,
passed to the optional ``notify_error`` callback and leave state untouched.
"""

import logging
from collections.abc import Callable
from pathlib import Path

from .backup import (
    BackupData,
    ImportDataError,
    OperationResult,
    build_backup,
    read_backup,
    write_backup,
)
from .cache import EventCache, TraySnapshot
from .config import EVENTS_FILE_NAME, SETTINGS_FILE_NAME, Settings, get_data_dir
from .config_validation import ConfigValidationError, validate_settings
from .events import TimerEvent, normalize_timer_name
from .names import DisplayNames
from .report import format_tray_title, select_tray_icon
from .storage import (
    EventStore,
    JsonlEventStore,
    SettingsStore,
    StorageError,
    delete_segment_events,
    purge_timer_events,
)
from .timeline import TimelineData
from .timer_state import TimerInfo, TimerState
from .utils import now_ms, ts2str

logger = logging.getLogger(__name__)

# Settings whose change alters the derived views
VIEW_SETTINGS = {"day_start_hour", "day_start_minute", "timer_order", "timer_friendly_names"}


class Tracker:
    """Start/pause timers and query the derived views.

    Args:
        event_store: Backend for the event log
        settings_store: Backend for the settings
        settings: Already loaded settings (loaded from ``settings_store`` if None)
        clock: Returns the current time in ms
        notify_error: Called with (message, details) when a storage operation fails
    """

    def __init__(
        self,
        event_store: EventStore,
        settings_store: SettingsStore,
        settings: Settings | None = None,
        clock: Callable[[], int] = now_ms,
        notify_error: Callable[[str, str | None], None] | None = None,
    ) -> None:
        self.event_store = event_store
        self.settings_store = settings_store
        self.settings = settings if settings is not None else settings_store.load()
        self.clock = clock
        self.notify_error = notify_error

        self.display_names = DisplayNames(lambda: self.settings)
        self.cache = EventCache(event_store, lambda: self.settings, self.display_names, clock)

        try:
            events = self.cache.get_events()
        except StorageError as e:
            self._report_error("Failed to load timer history", e)
            self.cache.on_events_replaced([])
            events = []
        self.display_names.rebuild(events)

    @classmethod
    def open(
        cls,
        data_dir: Path | None = None,
        clock: Callable[[], int] = now_ms,
        notify_error: Callable[[str, str | None], None] | None = None,
    ) -> "Tracker":
        """Create a tracker on the settings and event log in ``data_dir``."""
        data_dir = Path(data_dir) if data_dir is not None else get_data_dir()
        settings_store = SettingsStore(data_dir / SETTINGS_FILE_NAME)
        settings = settings_store.load()
        events_path = Path(settings.event_log_path) if settings.event_log_path else data_dir / EVENTS_FILE_NAME
        logger.debug(f"Using event log {events_path}")
        return cls(
            JsonlEventStore(events_path),
            settings_store,
            settings=settings,
            clock=clock,
            notify_error=notify_error,
        )

    # Storage helpers

    def _report_error(self, message: str, error: Exception | None = None) -> None:
        details = str(error) if error is not None else None
        logger.error(f"{message}: {details}" if details else message)
        if self.notify_error is not None:
            self.notify_error(message, details)

    def _append(self, event: TimerEvent) -> bool:
        try:
            self.event_store.append_event(event)
        except StorageError as e:
            self._report_error("Failed to save timer event", e)
            return False
        self.cache.on_event_appended(event)
        extra = {"event_ts": event.ts}
        if event.timer is not None:
            extra["timer"] = event.timer
        logger.debug(f"Recorded {event.kind.value} event", extra=extra)
        return True

    def _replace(self, events: list[TimerEvent]) -> bool:
        try:
            self.event_store.replace_events(events)
        except StorageError as e:
            self._report_error("Failed to rewrite timer history", e)
            return False
        self.cache.on_events_replaced(events)
        return True

    def _save_settings(self, settings: Settings) -> bool:
        """Persist ``settings`` and make them current. A failed save changes nothing."""
        try:
            self.settings_store.save(settings)
        except StorageError as e:
            self._report_error("Failed to save settings", e)
            return False
        self.settings = settings
        return True

    # Timer actions

    def start_timer(self, timer_name: str) -> TimerState:
        """Start a timer, creating it if needed.

        With ``pause_others_on_start`` every other running timer is paused at
        the same instant.

        Raises:
            ValueError: If the timer name is blank
        """
        normalized = normalize_timer_name(timer_name)
        if not normalized:
            raise ValueError("Timer name must not be empty")
        self.display_names.remember(timer_name)

        if normalized not in self.settings.timer_order:
            settings = self.settings.copy()
            settings.timer_order.append(normalized)
            if self._save_settings(settings):
                self.cache.on_settings_changed()

        now = self.clock()
        if self.settings.pause_others_on_start:
            for running in self.cache.get_running_timers():
                if running != normalized:
                    self._append(TimerEvent.pause(now, running))

        self._append(TimerEvent.start(now, normalized))
        return self.get_state()

    def pause_timer(self, timer_name: str) -> TimerState:
        """Pause a timer. Pausing a timer that is not running changes nothing."""
        normalized = normalize_timer_name(timer_name)
        self._append(TimerEvent.pause(self.clock(), normalized))
        state = self.get_state()
        info = state.get_timer(normalized)
        if info is not None:
            logger.info(
                f"Paused '{normalized}'",
                extra={"timer": normalized, "elapsed": info.elapsed_today},
            )
        return state

    def pause_all(self) -> TimerState:
        self._append(TimerEvent.pause_all(self.clock()))
        return self.get_state()

    def toggle_timer(self, timer_name: str) -> TimerState:
        """Pause the timer if it is running, start it otherwise."""
        if normalize_timer_name(timer_name) in self.cache.get_running_timers():
            return self.pause_timer(timer_name)
        return self.start_timer(timer_name)

    def rename_timer(self, normalized_name: str, friendly_name: str) -> TimerState:
        """Set the display name of a timer. An empty name removes the override."""
        normalized = normalize_timer_name(normalized_name)
        friendly = friendly_name.strip()
        settings = self.settings.copy()
        if friendly:
            settings.timer_friendly_names[normalized] = friendly
        else:
            settings.timer_friendly_names.pop(normalized, None)
        if self._save_settings(settings):
            self.cache.on_settings_changed()
        return self.get_state()

    def delete_timer(self, normalized_name: str) -> TimerState:
        """Delete a timer together with its whole history."""
        normalized = normalize_timer_name(normalized_name)
        events = purge_timer_events(self.cache.get_events(), normalized)
        if not self._replace(events):
            return self.get_state()
        self.display_names.forget(normalized)

        settings = self.settings.copy()
        settings.timer_order = [n for n in settings.timer_order if n != normalized]
        settings.timer_friendly_names.pop(normalized, None)
        if self._save_settings(settings):
            self.cache.on_settings_changed()
        logger.info(f"Deleted timer '{normalized}'")
        return self.get_state()

    def delete_segment(self, timer_name: str, start: int, end: int) -> OperationResult:
        """Remove ``[start, end)`` of a timer's history, e.g. one timeline segment."""
        normalized = normalize_timer_name(timer_name)
        events = delete_segment_events(self.cache.get_events(), normalized, start, end)
        if events is None:
            message = f"No recorded time of '{normalized}' covers {ts2str(start)} - {ts2str(end)}"
            logger.warning(message)
            return OperationResult(success=False, error=message)
        if not self._replace(events):
            return OperationResult(success=False, error="Failed to rewrite timer history")
        return OperationResult(success=True, events_count=len(events))

    # Settings

    def update_timer_order(self, order: list[str]) -> Settings:
        settings = self.settings.copy()
        settings.timer_order = [normalize_timer_name(name) for name in order]
        if self._save_settings(settings):
            self.cache.on_settings_changed()
        return self.settings

    def update_settings(self, **updates) -> Settings:
        """Apply and persist settings updates.

        Raises:
            ConfigValidationError: If the updates contain invalid values
        """
        errors, warnings = validate_settings(updates)
        for warning in warnings:
            logger.warning(f"Settings warning: {warning}")
        if errors:
            raise ConfigValidationError("; ".join(errors))

        old = self.settings.to_dict()
        known = {k: v for k, v in updates.items() if k in Settings.field_names()}
        if not self._save_settings(Settings.from_dict({**old, **known})):
            return self.settings

        changed = {k for k in known if old.get(k) != known[k]}
        if changed & VIEW_SETTINGS:
            logger.debug(f"View settings changed: {sorted(changed & VIEW_SETTINGS)}")
            self.cache.on_settings_changed()
        return self.settings

    # Export / import

    def export_data(self, path: str | Path) -> OperationResult:
        data = build_backup(self.settings, self.cache.get_events(), self.clock())
        try:
            write_backup(path, data)
        except OSError as e:
            logger.error(f"Export failed: {e}")
            return OperationResult(success=False, error=str(e))
        return OperationResult(success=True, file_path=str(path), events_count=len(data["events"]))

    def import_data(
        self, path: str | Path, confirm: Callable[[BackupData], bool] | None = None
    ) -> OperationResult:
        """Replace all settings and events with the contents of a backup.

        Invalid backups are rejected before anything is changed.

        Args:
            path: Backup file
            confirm: Asked with the validated backup before anything is replaced
        """
        try:
            backup = read_backup(path)
        except ImportDataError as e:
            logger.warning(f"Import of {path} rejected: {e}")
            return OperationResult(success=False, error=str(e))

        if confirm is not None and not confirm(backup):
            logger.info(f"Import of {path} canceled")
            return OperationResult(success=False, canceled=True, file_path=str(path))

        if not self._replace(backup.events):
            return OperationResult(success=False, error="Failed to rewrite timer history")

        # The imported events were written to this installation's log, so the
        # settings must keep pointing there
        settings = backup.settings
        settings.event_log_path = self.settings.event_log_path
        self._save_settings(settings)
        self.display_names.rebuild(backup.events)
        self.cache.on_settings_changed()
        logger.info(f"Imported {len(backup.events)} events from {path}")
        return OperationResult(success=True, file_path=str(path), events_count=len(backup.events))

    # Queries

    def get_state(self) -> TimerState:
        return self.cache.get_timer_state()

    def get_timers(self) -> list[TimerInfo]:
        return self.get_state().timers

    def get_running_timers(self) -> list[str]:
        return self.cache.get_running_timers()

    def get_timeline(self, date_ts: int | None = None) -> TimelineData:
        return self.cache.get_timeline(date_ts)

    def get_tray_snapshot(self) -> TraySnapshot:
        return self.cache.get_tray_snapshot()

    def get_tray_icon(self) -> str:
        """Tray icon name: "paused", "recording" or the running timer's number."""
        return select_tray_icon(
            self.get_tray_snapshot().tray_icon_index,
            self.settings.use_task_number_as_tray_icon,
        )

    def get_tray_title(self) -> str:
        """Tray title for the current moment, extrapolated from the tray snapshot."""
        return format_tray_title(
            self.get_tray_snapshot(),
            self.clock(),
            show_task=self.settings.show_active_task_in_tray,
            show_time=self.settings.show_active_time_in_tray,
        )
