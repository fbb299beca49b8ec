"""Tests for event and settings storage and the log rewrites."""

import logging

import pytest

from conftest import EventLogBuilder, local_ms

from tracktime.config import Settings, load_settings
from tracktime.config_validation import ConfigValidationError
from tracktime.events import TimerEvent
from tracktime.intervals import Interval, build_timer_intervals
from tracktime.storage import (
    JsonlEventStore,
    MemoryEventStore,
    SettingsStore,
    StorageError,
    delete_segment_events,
    purge_timer_events,
)

T9 = local_ms(2025, 1, 8, 9)
T930 = local_ms(2025, 1, 8, 9, 30)
T10 = local_ms(2025, 1, 8, 10)
T11 = local_ms(2025, 1, 8, 11)


class TestJsonlEventStore:
    """Test the line-delimited JSON event log."""

    def test_missing_file_is_empty(self, tmp_path) -> None:
        assert JsonlEventStore(tmp_path / "events.jsonl").load_events() == []

    def test_append_and_load(self, tmp_path) -> None:
        store = JsonlEventStore(tmp_path / "sub" / "events.jsonl")
        events = EventLogBuilder().work("a", T9, T10).pause_all(T11).build()
        for event in events:
            store.append_event(event)

        assert store.load_events() == events
        lines = store.path.read_text().splitlines()
        assert lines[0] == '{"event": "start", "ts": %d, "timer": "a"}' % T9
        assert lines[2] == '{"event": "pause_all", "ts": %d}' % T11

    def test_malformed_lines_are_skipped(self, tmp_path) -> None:
        path = tmp_path / "events.jsonl"
        path.write_text(
            '{"event": "start", "ts": 1000, "timer": "a"}\n'
            "not json\n"
            '{"event": "jump", "ts": 2000, "timer": "a"}\n'
            "\n"
            '{"event": "pause", "ts": 3000, "timer": "a"}\n'
        )
        assert JsonlEventStore(path).load_events() == [
            TimerEvent.start(1000, "a"),
            TimerEvent.pause(3000, "a"),
        ]

    def test_non_finite_timestamp_does_not_abort_load(self, tmp_path) -> None:
        path = tmp_path / "events.jsonl"
        path.write_text(
            '{"event": "start", "ts": 1000, "timer": "a"}\n'
            '{"event": "pause_all", "ts": Infinity}\n'
            '{"event": "pause", "ts": 3000, "timer": "a"}\n'
        )
        assert JsonlEventStore(path).load_events() == [
            TimerEvent.start(1000, "a"),
            TimerEvent.pause(3000, "a"),
        ]

    def test_replace(self, tmp_path) -> None:
        store = JsonlEventStore(tmp_path / "events.jsonl")
        store.append_event(TimerEvent.start(1000, "a"))
        store.replace_events([TimerEvent.start(5000, "b")])
        assert store.load_events() == [TimerEvent.start(5000, "b")]
        assert not (tmp_path / "events.jsonl.tmp").exists()

    def test_replace_with_empty_log(self, tmp_path) -> None:
        store = JsonlEventStore(tmp_path / "events.jsonl")
        store.append_event(TimerEvent.start(1000, "a"))
        store.replace_events([])
        assert store.load_events() == []

    def test_write_failure_raises_storage_error(self, tmp_path) -> None:
        store = JsonlEventStore(tmp_path)  # a directory, not a file
        with pytest.raises(StorageError):
            store.append_event(TimerEvent.start(1000, "a"))

    def test_read_failure_raises_storage_error(self, tmp_path) -> None:
        with pytest.raises(StorageError):
            JsonlEventStore(tmp_path).load_events()


class TestMemoryEventStore:
    def test_load_returns_copy(self) -> None:
        store = MemoryEventStore([TimerEvent.start(1, "a")])
        store.load_events().append(TimerEvent.pause(2, "a"))
        assert len(store.events) == 1


class TestSettingsStore:
    """Test the TOML settings file."""

    def test_round_trip(self, tmp_path) -> None:
        store = SettingsStore(tmp_path / "settings.toml")
        settings = Settings(
            day_start_hour=6,
            day_start_minute=30,
            timer_order=["b", "a"],
            timer_friendly_names={"a": "Alpha"},
            show_active_time_in_tray=True,
        )
        store.save(settings)
        assert store.load() == settings
        assert "event_log_path" not in store.path.read_text()

    def test_missing_file_gives_defaults(self, tmp_path) -> None:
        assert SettingsStore(tmp_path / "settings.toml").load() == Settings()

    def test_partial_file_merged_over_defaults(self, tmp_path) -> None:
        path = tmp_path / "settings.toml"
        path.write_text("day_start_hour = 5\nsome_future_option = true\n")
        settings = SettingsStore(path).load()
        assert settings.day_start_hour == 5
        assert settings.pause_others_on_start is True

    def test_invalid_values_fall_back_to_defaults(self, tmp_path) -> None:
        path = tmp_path / "settings.toml"
        path.write_text('day_start_hour = 30\nplay_sounds = "yes"\nday_start_minute = 15\n')
        settings = SettingsStore(path).load()
        assert settings.day_start_hour == 0
        assert settings.play_sounds is False
        assert settings.day_start_minute == 15

    def test_load_logs_validation_results(self, tmp_path, caplog) -> None:
        """Problems in the settings file are logged when it is loaded."""
        path = tmp_path / "settings.toml"
        path.write_text("day_start_minute = 75\nfavourite_color = \"blue\"\n")
        with caplog.at_level(logging.WARNING):
            settings = load_settings(path)
        assert settings.day_start_minute == 0
        assert "Settings error: 'day_start_minute' must be <= 59" in caplog.text
        assert "Unknown settings key: 'favourite_color'" in caplog.text

    def test_strict_load_raises(self, tmp_path) -> None:
        path = tmp_path / "settings.toml"
        path.write_text("day_start_hour = 30\n")
        with pytest.raises(ConfigValidationError):
            load_settings(path, strict=True)

    def test_broken_toml_gives_defaults(self, tmp_path) -> None:
        path = tmp_path / "settings.toml"
        path.write_text("this is = = not toml")
        assert SettingsStore(path).load() == Settings()

    def test_store_without_path(self) -> None:
        store = SettingsStore(None)
        store.save(Settings(day_start_hour=4))
        assert store.load() == Settings()

    def test_save_failure_raises_storage_error(self, tmp_path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("")
        with pytest.raises(StorageError):
            SettingsStore(blocker / "settings.toml").save(Settings())


class TestPurgeTimerEvents:
    def test_keeps_other_timers_and_pause_all(self) -> None:
        events = (
            EventLogBuilder()
            .work("a", T9, T10)
            .start("b", T10)
            .pause_all(T11)
            .build()
        )
        assert purge_timer_events(events, "a") == [TimerEvent.start(T10, "b"), TimerEvent.pause_all(T11)]


def intervals_after_delete(events, timer, start, end):
    result = delete_segment_events(events, timer, start, end)
    assert result is not None
    return build_timer_intervals(result)


class TestDeleteSegmentEvents:
    """Test removing a span of a timer's history."""

    def test_whole_interval(self) -> None:
        events = EventLogBuilder().work("a", T9, T11).build()
        assert delete_segment_events(events, "a", T9, T11) == []

    def test_middle_of_interval(self) -> None:
        events = EventLogBuilder().work("a", T9, T11).build()
        processed = intervals_after_delete(events, "a", T930, T10)
        assert processed.intervals["a"] == [Interval(T9, T930), Interval(T10, T11)]

    def test_head_of_interval(self) -> None:
        events = EventLogBuilder().work("a", T9, T11).build()
        assert delete_segment_events(events, "a", T9, T10) == [
            TimerEvent.start(T10, "a"),
            TimerEvent.pause(T11, "a"),
        ]

    def test_tail_of_interval(self) -> None:
        events = EventLogBuilder().work("a", T9, T11).build()
        assert delete_segment_events(events, "a", T10, T11) == [
            TimerEvent.start(T9, "a"),
            TimerEvent.pause(T10, "a"),
        ]

    def test_running_timer_keeps_running(self) -> None:
        events = EventLogBuilder().start("a", T9).build()
        processed = intervals_after_delete(events, "a", T9, T10)
        assert processed.intervals == {}
        assert processed.active_timers == {"a": T10}

    def test_interval_closed_by_pause_all(self) -> None:
        events = EventLogBuilder().start("a", T9).start("b", T9).pause_all(T11).build()
        result = delete_segment_events(events, "a", T9, T11)
        assert result == [TimerEvent.start(T9, "b"), TimerEvent.pause_all(T11)]

    def test_repeated_start_is_removed_with_its_run(self) -> None:
        events = EventLogBuilder().start("a", T9).start("a", T930).pause("a", T11).build()
        assert delete_segment_events(events, "a", T930, T11) == []

    def test_clipped_segment_across_midnight(self) -> None:
        """The part of an interval inside one day can be removed on its own."""
        midnight = local_ms(2025, 1, 8)
        events = EventLogBuilder().work("a", local_ms(2025, 1, 7, 23), local_ms(2025, 1, 8, 1)).build()
        processed = intervals_after_delete(events, "a", midnight, local_ms(2025, 1, 8, 1))
        assert processed.intervals["a"] == [Interval(local_ms(2025, 1, 7, 23), midnight)]

    def test_other_timers_untouched(self) -> None:
        events = (
            EventLogBuilder()
            .start("a", T9)
            .start("b", T930)
            .pause("a", T10)
            .pause("b", T11)
            .build()
        )
        processed = intervals_after_delete(events, "a", T9, T10)
        assert "a" not in processed.intervals
        assert processed.intervals["b"] == [Interval(T930, T11)]

    def test_no_covering_interval(self) -> None:
        events = EventLogBuilder().work("a", T9, T10).build()
        assert delete_segment_events(events, "a", T10, T11) is None
        assert delete_segment_events(events, "b", T9, T10) is None

    def test_empty_segment(self) -> None:
        events = EventLogBuilder().work("a", T9, T10).build()
        assert delete_segment_events(events, "a", T10, T9) is None

    def test_input_not_modified(self) -> None:
        events = EventLogBuilder().work("a", T9, T11).build()
        delete_segment_events(events, "a", T930, T10)
        assert events == EventLogBuilder().work("a", T9, T11).build()
