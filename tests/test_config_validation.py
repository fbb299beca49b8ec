"""Tests for settings validation."""

import logging

from tracktime.config import Settings
from tracktime.config_validation import validate_and_warn, validate_settings


class TestConfigValidator:
    """Tests for ConfigValidator class."""

    def test_empty_settings_are_valid(self) -> None:
        """Empty settings should be valid (uses defaults)."""
        errors, warnings = validate_settings({})
        assert len(errors) == 0
        assert len(warnings) == 0

    def test_defaults_are_valid(self) -> None:
        settings = Settings().to_dict()
        del settings["event_log_path"]
        errors, warnings = validate_settings(settings)
        assert errors == []
        assert warnings == []

    def test_unknown_key_warns(self) -> None:
        """Unknown keys should produce warnings."""
        errors, warnings = validate_settings({"unknown_key": "value"})
        assert len(errors) == 0
        assert any("unknown_key" in w for w in warnings)

    def test_not_a_dictionary(self) -> None:
        errors, warnings = validate_settings(["day_start_hour"])
        assert errors == ["settings must be a dictionary"]

    def test_bool_keys_must_be_bool(self) -> None:
        errors, warnings = validate_settings({"pause_others_on_start": "yes", "play_sounds": 1})
        assert any("pause_others_on_start" in e and "boolean" in e for e in errors)
        assert any("play_sounds" in e and "boolean" in e for e in errors)


class TestIntValidation:
    """Tests for integer settings."""

    def test_valid_day_start(self) -> None:
        errors, warnings = validate_settings({"day_start_hour": 23, "day_start_minute": 59})
        assert len(errors) == 0

    def test_day_start_hour_range(self) -> None:
        errors, warnings = validate_settings({"day_start_hour": 24})
        assert any("day_start_hour" in e and "<=" in e for e in errors)

    def test_day_start_minute_negative(self) -> None:
        errors, warnings = validate_settings({"day_start_minute": -1})
        assert any("day_start_minute" in e and ">=" in e for e in errors)

    def test_wrong_type(self) -> None:
        errors, warnings = validate_settings({"day_start_hour": "six"})
        assert any("day_start_hour" in e and "int" in e for e in errors)

    def test_bool_is_not_an_int(self) -> None:
        errors, warnings = validate_settings({"day_start_hour": True})
        assert any("day_start_hour" in e for e in errors)

    def test_version_at_least_one(self) -> None:
        errors, warnings = validate_settings({"version": 0})
        assert any("version" in e for e in errors)


class TestEventLogPath:
    def test_must_be_string(self) -> None:
        errors, warnings = validate_settings({"event_log_path": 42})
        assert any("event_log_path" in e for e in errors)

    def test_empty_warns(self) -> None:
        errors, warnings = validate_settings({"event_log_path": "  "})
        assert len(errors) == 0
        assert any("event_log_path" in w for w in warnings)


class TestTimerOrder:
    """Tests for timer_order validation."""

    def test_must_be_list(self) -> None:
        errors, warnings = validate_settings({"timer_order": "a,b"})
        assert any("timer_order" in e and "list" in e for e in errors)

    def test_must_be_list_of_strings(self) -> None:
        errors, warnings = validate_settings({"timer_order": ["a", 1]})
        assert any("timer_order" in e and "strings" in e for e in errors)

    def test_duplicates_warn(self) -> None:
        errors, warnings = validate_settings({"timer_order": ["a", "b", "a"]})
        assert len(errors) == 0
        assert any("duplicate" in w for w in warnings)

    def test_not_normalized_warns(self) -> None:
        errors, warnings = validate_settings({"timer_order": ["Writing "]})
        assert len(errors) == 0
        assert any("Writing" in w for w in warnings)


class TestFriendlyNames:
    """Tests for timer_friendly_names validation."""

    def test_valid(self) -> None:
        errors, warnings = validate_settings({"timer_friendly_names": {"a": "Alpha"}})
        assert errors == []
        assert warnings == []

    def test_must_be_dictionary(self) -> None:
        errors, warnings = validate_settings({"timer_friendly_names": ["a"]})
        assert any("timer_friendly_names" in e for e in errors)

    def test_values_must_be_strings(self) -> None:
        errors, warnings = validate_settings({"timer_friendly_names": {"a": 1}})
        assert any("timer_friendly_names.a" in e for e in errors)

    def test_empty_value_warns(self) -> None:
        errors, warnings = validate_settings({"timer_friendly_names": {"a": ""}})
        assert len(errors) == 0
        assert any("timer_friendly_names.a" in w for w in warnings)


class TestValidateAndWarn:
    def test_logs_and_reports(self, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="tracktime.config_validation"):
            assert validate_and_warn({"day_start_hour": 99, "extra": 1}) is False
        assert "day_start_hour" in caplog.text
        assert "extra" in caplog.text

    def test_valid_settings(self) -> None:
        assert validate_and_warn({"day_start_hour": 6}) is True
