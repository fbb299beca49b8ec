"""Settings for tracktime.

Settings are a fixed, typed record. Whatever is stored on disk is merged over
the defaults on load, so older or partial settings files keep working.
Settings are persisted as TOML in the data directory.
"""

import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import toml

from .config_validation import ConfigValidationError, validate_and_warn, validate_settings

logger = logging.getLogger(__name__)

SETTINGS_FILE_NAME = "settings.toml"
EVENTS_FILE_NAME = "events.jsonl"


@dataclass
class Settings:
    """User settings that shape how the event log is interpreted and shown.

    Attributes:
        version: Settings format version
        pause_others_on_start: Starting a timer pauses every other running timer
        play_sounds: Play a sound on start/pause (used by desktop front-ends)
        day_start_hour: Hour at which a logical day begins
        day_start_minute: Minute at which a logical day begins
        event_log_path: Custom location of the event log, None for the default
        use_task_number_as_tray_icon: Show the running timer's list position in the tray
        show_active_task_in_tray: Show the running timer's name in the tray title
        show_active_time_in_tray: Show the running timer's elapsed time in the tray title
        timer_order: Explicit ordering of timers (normalized names)
        timer_friendly_names: Display name overrides keyed by normalized name
    """

    version: int = 1
    pause_others_on_start: bool = True
    play_sounds: bool = False
    day_start_hour: int = 0
    day_start_minute: int = 0
    event_log_path: str | None = None
    use_task_number_as_tray_icon: bool = True
    show_active_task_in_tray: bool = False
    show_active_time_in_tray: bool = False
    timer_order: list[str] = field(default_factory=list)
    timer_friendly_names: dict[str, str] = field(default_factory=dict)

    @classmethod
    def field_names(cls) -> set[str]:
        return {f.name for f in fields(cls)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        """Merge ``data`` over the defaults. Unknown keys are ignored."""
        known = cls.field_names()
        values = {k: v for k, v in data.items() if k in known}
        settings = cls(**values)
        # Never share list/dict instances with the caller
        settings.timer_order = list(settings.timer_order)
        settings.timer_friendly_names = dict(settings.timer_friendly_names)
        return settings

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def copy(self) -> "Settings":
        return Settings.from_dict(self.to_dict())


def get_data_dir() -> Path:
    """
    Get the default data directory.

    Returns:
        Path to the tracktime directory in the user's data directory
    """
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        data_dir = Path(data_home)
    else:
        data_dir = Path.home() / ".local" / "share"
    return data_dir / "tracktime"


def sanitize_settings_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Drop unknown keys and keys that fail validation, logging the latter."""
    sanitized = {}
    for key, value in data.items():
        errors, _warnings = validate_settings({key: value})
        if errors:
            logger.warning(f"Using the default for '{key}': {'; '.join(errors)}")
            continue
        if key in Settings.field_names():
            sanitized[key] = value
    return sanitized


def load_settings(path: Path, strict: bool = False) -> Settings:
    """Load settings from a TOML file, merged over the defaults.

    A missing file yields the defaults. An unreadable file is logged and also
    yields the defaults, so a broken settings file never prevents startup.

    Args:
        path: Settings file path
        strict: Raise ConfigValidationError instead of dropping invalid values

    Raises:
        ConfigValidationError: If ``strict`` and the settings contain errors
    """
    path = Path(path)
    if not path.exists():
        logger.debug(f"No settings file at {path}, using defaults")
        return Settings()

    try:
        data = toml.load(path)
    except (OSError, toml.TomlDecodeError) as e:
        logger.error(f"Failed to load settings from {path} - using defaults: {e}")
        return Settings()

    if strict:
        errors, _warnings = validate_settings(data)
        if errors:
            raise ConfigValidationError("; ".join(errors))

    if validate_and_warn(data):
        return Settings.from_dict(data)
    return Settings.from_dict(sanitize_settings_dict(data))


def save_settings(path: Path, settings: Settings) -> None:
    """Write settings as TOML through a temporary file and an atomic rename.

    Raises:
        OSError: If the file cannot be written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    # TOML has no null, so unset optional values are simply left out
    data = {k: v for k, v in settings.to_dict().items() if v is not None}
    temp_path = path.with_name(path.name + ".tmp")
    with open(temp_path, "w") as f:
        toml.dump(data, f)
    os.replace(temp_path, path)
