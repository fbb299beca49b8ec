"""Logging and output utilities for tracktime."""

import json
import logging
import sys
from datetime import UTC, datetime

from termcolor import cprint

from .utils import format_time, ts2str


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs structured logs with all relevant context.
    Can output in JSON format for later analysis.
    """

    # Extra fields that may be attached with logger.x(..., extra={...})
    EXTRA_FIELDS = ("timer", "event_ts", "elapsed")

    def __init__(self, use_json: bool = False, run_mode: dict = None) -> None:
        super().__init__()
        self.use_json = use_json
        self.run_mode = run_mode or {}

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if self.run_mode:
            log_data["run_mode"] = self.run_mode

        for key in self.EXTRA_FIELDS:
            if hasattr(record, key):
                val = getattr(record, key)
                # event_ts is ms since epoch, elapsed is a duration in ms
                if key == "event_ts" and isinstance(val, int):
                    log_data[key] = ts2str(val)
                elif key == "elapsed" and isinstance(val, int):
                    log_data[key] = format_time(val)
                else:
                    log_data[key] = str(val)

        if self.use_json:
            return json.dumps(log_data)
        return self._format_human(log_data)

    def _format_human(self, log_data: dict) -> str:
        """Format log data in a human-readable way."""
        now = datetime.now().strftime("%H:%M:%S")
        event_ts = log_data.get("event_ts")
        ts_prefix = f"{now} / {event_ts}" if event_ts else now

        msg = log_data["message"]
        if "timer" in log_data:
            msg = f"{msg} (timer: {log_data['timer']})"
        if "elapsed" in log_data:
            msg = f"{msg} (elapsed: {log_data['elapsed']})"

        # No color formatting here - that's handled by the handler
        return f"{ts_prefix}: {msg}"


class ColoredConsoleHandler(logging.StreamHandler):
    """
    Console handler that adds colors based on log level.
    Warnings are bold, errors/criticals are bold and red.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            attrs = []
            color = None

            if record.levelno > logging.ERROR:
                attrs = ["bold", "blink"]
                color = "red"
            elif record.levelno > logging.WARNING:
                attrs = ["bold"]
                color = "red"
            elif record.levelno > logging.INFO:
                attrs = ["bold"]
                color = "yellow"
            elif record.levelno == logging.INFO:
                color = "yellow"
            # DEBUG level gets no special formatting

            if color or attrs:
                cprint(msg, color=color, attrs=attrs, file=self.stream)
            else:
                self.stream.write(msg + self.terminator)
            self.flush()
        except Exception:
            self.handleError(record)


def setup_logging(
    json_format: bool = False,
    log_level: int = logging.DEBUG,
    console_log_level: int = logging.ERROR,
    log_file: str = None,
    run_mode: dict = None,
) -> None:
    """
    Set up the logging system.

    Args:
        json_format: If True, write the log file in JSON format
        log_level: Logging level (default: DEBUG)
        console_log_level: Console logging level (default: ERROR)
        log_file: Optional file path to write logs to. If None, logs to console only.
        run_mode: Optional dict with run mode info (subcommand, data dir) for filtering logs
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    root_logger.handlers.clear()

    if log_file and log_level:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)  # Always log everything to file
        file_handler.setFormatter(StructuredFormatter(use_json=json_format, run_mode=run_mode))
        root_logger.addHandler(file_handler)
    if console_log_level:
        console_handler = ColoredConsoleHandler(sys.stderr)
        console_handler.setLevel(console_log_level)
        console_handler.setFormatter(StructuredFormatter(run_mode=run_mode))
        root_logger.addHandler(console_handler)


def user_output(msg: str, color: str = None, attrs: list = None) -> None:
    """
    Output message to the user (program output, not debug logging).

    Args:
        msg: Message to display to the user
        color: Optional color (e.g., 'yellow', 'red', 'white')
        attrs: Optional attributes (e.g., ['bold'])
    """
    if color or attrs:
        cprint(msg, color=color, attrs=attrs)
    else:
        print(msg)
