"""Settings validation for tracktime.

Validates a settings dictionary (as loaded from TOML or from a backup file)
and reports errors and warnings.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)


class ConfigValidationError(Exception):
    """Raised when settings have critical errors."""

    pass


class ConfigValidator:
    """Validates settings dictionaries."""

    BOOL_KEYS = {
        "pause_others_on_start",
        "play_sounds",
        "use_task_number_as_tray_icon",
        "show_active_task_in_tray",
        "show_active_time_in_tray",
    }

    # Integer settings with their allowed ranges
    INT_PARAMS = {
        "version": {"min": 1},
        "day_start_hour": {"min": 0, "max": 23},
        "day_start_minute": {"min": 0, "max": 59},
    }

    KNOWN_KEYS = BOOL_KEYS | set(INT_PARAMS) | {
        "event_log_path",
        "timer_order",
        "timer_friendly_names",
    }

    def __init__(self):
        self.errors: list[str] = []
        self.warnings: list[str] = []

    def validate(self, settings: dict[str, Any]) -> tuple[list[str], list[str]]:
        """Validate the settings.

        Args:
            settings: The settings dictionary to validate

        Returns:
            Tuple of (errors, warnings) lists
        """
        self.errors = []
        self.warnings = []

        if not isinstance(settings, dict):
            self.errors.append("settings must be a dictionary")
            return self.errors, self.warnings

        for key in settings:
            if key not in self.KNOWN_KEYS:
                self.warnings.append(f"Unknown settings key: '{key}'")

        self._validate_bools(settings)
        self._validate_ints(settings)
        self._validate_event_log_path(settings)
        self._validate_timer_order(settings.get("timer_order", []))
        self._validate_friendly_names(settings.get("timer_friendly_names", {}))

        return self.errors, self.warnings

    def _validate_bools(self, settings: dict) -> None:
        for key in self.BOOL_KEYS:
            if key in settings and not isinstance(settings[key], bool):
                self.errors.append(f"'{key}' must be a boolean")

    def _validate_ints(self, settings: dict) -> None:
        for key, spec in self.INT_PARAMS.items():
            if key not in settings:
                continue
            value = settings[key]
            if isinstance(value, bool) or not isinstance(value, int):
                self.errors.append(f"'{key}' must be int, got {type(value).__name__}")
                continue
            if "min" in spec and value < spec["min"]:
                self.errors.append(f"'{key}' must be >= {spec['min']}, got {value}")
            if "max" in spec and value > spec["max"]:
                self.errors.append(f"'{key}' must be <= {spec['max']}, got {value}")

    def _validate_event_log_path(self, settings: dict) -> None:
        value = settings.get("event_log_path")
        if value is not None and not isinstance(value, str):
            self.errors.append("'event_log_path' must be a string")
        elif isinstance(value, str) and not value.strip():
            self.warnings.append("'event_log_path' is empty - the default location will be used")

    def _validate_timer_order(self, timer_order: Any) -> None:
        if not isinstance(timer_order, list):
            self.errors.append("'timer_order' must be a list")
            return
        if not all(isinstance(name, str) for name in timer_order):
            self.errors.append("'timer_order' must be a list of strings")
            return
        if len(set(timer_order)) != len(timer_order):
            self.warnings.append("'timer_order' contains duplicate timers")
        for name in timer_order:
            if name != name.strip().lower():
                self.warnings.append(f"'timer_order' entry '{name}' is not a normalized timer name")

    def _validate_friendly_names(self, friendly_names: Any) -> None:
        if not isinstance(friendly_names, dict):
            self.errors.append("'timer_friendly_names' must be a dictionary")
            return
        for name, friendly in friendly_names.items():
            if not isinstance(friendly, str):
                self.errors.append(f"timer_friendly_names.{name} must be a string")
            elif not friendly.strip():
                self.warnings.append(f"timer_friendly_names.{name} is empty")


def validate_settings(settings: dict[str, Any]) -> tuple[list[str], list[str]]:
    """Validate settings and return errors and warnings.

    Args:
        settings: The settings dictionary to validate

    Returns:
        Tuple of (errors, warnings) lists
    """
    validator = ConfigValidator()
    return validator.validate(settings)


def log_validation_results(errors: list[str], warnings: list[str]) -> None:
    """Log validation results.

    Args:
        errors: List of error messages
        warnings: List of warning messages
    """
    for warning in warnings:
        logger.warning(f"Settings warning: {warning}")
    for error in errors:
        logger.error(f"Settings error: {error}")


def validate_and_warn(settings: dict[str, Any]) -> bool:
    """Validate settings and log warnings/errors.

    Args:
        settings: The settings dictionary to validate

    Returns:
        True if the settings are valid (no errors), False otherwise
    """
    errors, warnings = validate_settings(settings)
    log_validation_results(errors, warnings)
    return len(errors) == 0
