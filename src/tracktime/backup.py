"""
Export and import of all tracktime data as a single JSON document.

A backup looks like::

    {
      "version": 1,
      "exported_at": "2025-01-06T17:00:00+00:00",
      "settings": {...},
      "events": [{"event": "start", "ts": 1736150400000, "timer": "work"}, ...]
    }
"""

import json
import logging
import os
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .config import Settings, sanitize_settings_dict
from .events import TimerEvent

logger = logging.getLogger(__name__)

BACKUP_VERSION = 1


class ImportDataError(ValueError):
    """Raised when a backup file cannot be imported."""

    pass


@dataclass
class OperationResult:
    """Outcome of an operation that touches storage, as reported to front-ends."""

    success: bool
    canceled: bool = False
    error: str | None = None
    file_path: str | None = None
    events_count: int | None = None


@dataclass
class BackupData:
    """A parsed and validated backup."""

    version: int
    exported_at: str | None
    settings: Settings
    events: list[TimerEvent]


def build_backup(settings: Settings, events: list[TimerEvent], now: int) -> dict[str, Any]:
    """Build the backup document for ``settings`` and ``events``.

    Args:
        settings: Current settings
        events: The full event log
        now: Export time in ms
    """
    return {
        "version": BACKUP_VERSION,
        "exported_at": datetime.fromtimestamp(now / 1000, tz=UTC).isoformat(),
        "settings": settings.to_dict(),
        "events": [event.to_dict() for event in events],
    }


def write_backup(path: str | Path, data: dict[str, Any]) -> None:
    """Write a backup document through a temporary file and an atomic rename.

    Raises:
        OSError: If the file cannot be written
    """
    path = Path(path)
    temp_path = path.with_name(path.name + ".tmp")
    with open(temp_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    os.replace(temp_path, path)


def parse_backup(text: str) -> BackupData:
    """Parse and validate a backup document.

    Nothing is imported unless the document as a whole is valid. Individual
    malformed events are dropped, as they would be when loading the log.

    Raises:
        ImportDataError: If the document is not a valid backup
    """
    try:
        data = json.loads(text)
    except ValueError as e:
        raise ImportDataError(f"Backup file is not valid JSON: {e}") from e

    if not isinstance(data, dict) or not data.get("version") or "settings" not in data or "events" not in data:
        raise ImportDataError("Invalid backup file format")
    if not isinstance(data["settings"], dict):
        raise ImportDataError("Invalid backup file format: 'settings' must be an object")
    if not isinstance(data["events"], list):
        raise ImportDataError("Invalid backup file format: 'events' must be a list")

    events = []
    for record in data["events"]:
        try:
            events.append(TimerEvent.from_dict(record))
        except ValueError as e:
            logger.warning(f"Skipping invalid event in backup: {e}")

    return BackupData(
        version=data["version"],
        exported_at=data.get("exported_at"),
        settings=Settings.from_dict(sanitize_settings_dict(data["settings"])),
        events=events,
    )


def read_backup(path: str | Path) -> BackupData:
    """Read and validate a backup file.

    Raises:
        ImportDataError: If the file cannot be read or is not a valid backup
    """
    try:
        with open(path, encoding="utf-8") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ImportDataError(f"Failed to read backup file {path}: {e}") from e
    return parse_backup(text)
