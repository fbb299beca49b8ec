"""Terminal rendering of timer state, timelines and the tray title."""

from termcolor import colored

from .timeline import TimelineData
from .timer_state import TIMER_COLORS, TimerState
from .utils import format_compact_hour, format_duration, format_time, ts2str

# Closest terminal colors for the timer palette, in palette order
TERMINAL_COLORS = dict(
    zip(
        TIMER_COLORS,
        ["blue", "green", "magenta", "yellow", "light_magenta", "cyan", "light_red", "red"],
    )
)

TIMELINE_WIDTH = 60


def truncate_string(s: str, max_length: int = 30) -> str:
    """Truncate a string to max_length, adding ellipsis if needed."""
    if len(s) <= max_length:
        return s
    return s[: max_length - 3] + "..."


def format_trend(trend: int, width: int = 0) -> str:
    """Format a trend percentage, right-aligned to ``width`` before coloring."""
    text = f"+{trend}%" if trend > 0 else f"{trend}%"
    text = f"{text:>{width}}"
    if trend > 0:
        return colored(text, "green")
    elif trend < 0:
        return colored(text, "red")
    return text


def format_tray_title(snapshot, now: int, show_task: bool, show_time: bool) -> str:
    """Tray title text for a tray snapshot.

    The elapsed time is extrapolated from the snapshot, so this is cheap
    enough to call on every display tick.
    """
    if not snapshot.running_timers:
        return ""
    parts = []
    if show_task:
        parts.append(snapshot.primary_display_name)
    if show_time:
        parts.append(format_time(snapshot.current_elapsed(now)))
    return " ".join(parts)


def select_tray_icon(tray_icon_index: int | None, use_task_number: bool) -> str:
    """Name of the tray icon for a tray icon index.

    "paused" when nothing runs. The timer's number (1-9) when
    ``use_task_number`` is set and a single listed timer runs, otherwise the
    generic "recording" icon.
    """
    if tray_icon_index is None:
        return "paused"
    if use_task_number and 1 <= tray_icon_index <= 9:
        return str(tray_icon_index)
    return "recording"


def format_state(state: TimerState) -> str:
    """Format a timer state as a table, numbered like the tray icon."""
    lines = []
    lines.append(colored(f" {'#':>2} {'Timer':<30} {'Today':>9} {'Week':>8} {'Trend':>6}", attrs=["bold"]))
    for i, timer in enumerate(state.timers, start=1):
        color = TERMINAL_COLORS.get(state.timer_colors.get(timer.name, ""))
        name = truncate_string(timer.display_name)
        marker = "▶" if timer.is_running else " "
        row = f"{i:>2} {name:<30} {format_time(timer.elapsed_today):>9} {format_duration(timer.weekly_total):>8} "
        lines.append(f"{colored(marker, color)}{row}{format_trend(timer.weekly_trend, width=6)}")

    lines.append("")
    lines.append(
        f"Total today: {colored(format_time(state.total_today), attrs=['bold'])}  "
        f"({format_trend(state.weekly_trend)} vs weekly avg)"
    )
    if state.running_timers:
        lines.append(f"Running: {', '.join(state.running_timers)}")
    else:
        lines.append("Running: (nothing)")
    return "\n".join(lines)


def format_timeline(timeline: TimelineData, width: int = TIMELINE_WIDTH) -> str:
    """Format a timeline as a colored bar followed by the list of segments."""
    lines = []
    span = timeline.day_end - timeline.day_start

    cells = []
    for i in range(width):
        slot_start = timeline.day_start + span * i // width
        slot_end = timeline.day_start + span * (i + 1) // width
        owner = None
        for segment in timeline.segments:
            if segment.start < slot_end and segment.end > slot_start:
                owner = segment
        if owner is None:
            cells.append("·")
        else:
            cells.append(colored("█", TERMINAL_COLORS.get(owner.color)))

    start_label = format_compact_hour(timeline.day_start)
    end_label = format_compact_hour(timeline.day_end)
    lines.append(f"{start_label} {''.join(cells)} {end_label}")

    if not timeline.segments:
        lines.append("No recorded time")
        return "\n".join(lines)

    lines.append("")
    for segment in timeline.segments:
        name = colored(truncate_string(segment.display_name), TERMINAL_COLORS.get(segment.color))
        lines.append(
            f"  {ts2str(segment.start, '%H:%M')} - {ts2str(segment.end, '%H:%M')}"
            f"  {format_duration(segment.duration):>7}  {name}"
        )
    return "\n".join(lines)
