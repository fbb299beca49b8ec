"""Tests for timer display names."""

from tracktime.config import Settings
from tracktime.events import TimerEvent
from tracktime.names import DisplayNames


class TestDisplayNames:
    """Test display name resolution priority."""

    def setup_method(self) -> None:
        self.settings = Settings()
        self.names = DisplayNames(lambda: self.settings)

    def test_normalized_name_by_default(self) -> None:
        assert self.names("writing") == "writing"

    def test_first_seen_casing(self) -> None:
        assert self.names.remember(" Deep Work ") == "deep work"
        self.names.remember("DEEP WORK")
        assert self.names("deep work") == "Deep Work"

    def test_fallback_original(self) -> None:
        assert self.names.get("email", "EMail") == "EMail"
        assert self.names.get("email", "email") == "EMail"

    def test_friendly_name_wins(self) -> None:
        self.names.remember("Deep Work")
        self.settings.timer_friendly_names["deep work"] = "Focus"
        assert self.names("deep work") == "Focus"

    def test_empty_friendly_name_ignored(self) -> None:
        self.names.remember("Deep Work")
        self.settings.timer_friendly_names["deep work"] = ""
        assert self.names("deep work") == "Deep Work"

    def test_forget(self) -> None:
        self.names.remember("Deep Work")
        self.names.forget("deep work")
        assert self.names("deep work") == "deep work"

    def test_rebuild(self) -> None:
        self.names.remember("Old")
        self.names.rebuild([TimerEvent.start(1, "new"), TimerEvent.pause_all(2)])
        assert self.names.first_seen == {"new": "new"}
