"""Display names for timers.

Timers are identified by their normalized name. What the user sees is, in
order of preference: the friendly name set in the settings, the casing the
timer was first created with, or the normalized name itself.
"""

from collections.abc import Callable, Iterable

from .config import Settings
from .events import TimerEvent, normalize_timer_name


class DisplayNames:
    """Resolver from normalized timer names to display names."""

    def __init__(self, get_settings: Callable[[], Settings]) -> None:
        self._get_settings = get_settings
        self.first_seen: dict[str, str] = {}

    def remember(self, original: str) -> str:
        """Record the first-seen casing of ``original`` and return its normalized name."""
        normalized = normalize_timer_name(original)
        self.first_seen.setdefault(normalized, original.strip())
        return normalized

    def get(self, normalized: str, original: str | None = None) -> str:
        if original is not None:
            self.first_seen.setdefault(normalized, original.strip())
        friendly = self._get_settings().timer_friendly_names.get(normalized)
        if friendly:
            return friendly
        return self.first_seen.get(normalized, normalized)

    __call__ = get

    def forget(self, normalized: str) -> None:
        self.first_seen.pop(normalized, None)

    def rebuild(self, events: Iterable[TimerEvent]) -> None:
        """Forget everything and re-learn first-seen casing from an event log."""
        self.first_seen.clear()
        for event in events:
            if event.timer is not None:
                self.remember(event.timer)
