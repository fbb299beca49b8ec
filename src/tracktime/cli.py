#!/usr/bin/env python3
"""
Command-line interface for tracktime with subcommand structure.

Provides subcommands to start and pause timers, show today's state and
timelines, manage timers and settings, and export/import all data.
"""

import argparse
import logging
import sys
from pathlib import Path

import toml

from .backup import BackupData
from .config import SETTINGS_FILE_NAME, get_data_dir
from .config_validation import validate_settings
from .output import setup_logging, user_output
from .report import format_state, format_timeline
from .tracker import Tracker
from .utils import parse_datetime_ms


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        description='Event-sourced time tracking with named timers',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start and pause timers
  %(prog)s start "Client work"
  %(prog)s pause "client work"
  %(prog)s pause-all

  # Show today's totals and trends
  %(prog)s status

  # Show the timeline of another day
  %(prog)s timeline --date yesterday

  # Remove an hour that was tracked by mistake
  %(prog)s delete-segment "client work" --from "2025-01-06 12:00" --to "2025-01-06 13:00"

  # Back up everything
  %(prog)s export backup.json
        """
    )

    # Global options (available for all subcommands)
    parser.add_argument(
        '--data-dir',
        metavar='DIR',
        type=Path,
        help='Directory holding settings and the event log (default: ~/.local/share/tracktime)'
    )
    parser.add_argument(
        '--log-level',
        choices=['NONE', 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default='INFO',
        help='Set logging level (default: INFO)'
    )
    parser.add_argument(
        '--console-log-level',
        choices=['NONE', 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default='WARNING',
        help='Set console logging level (default: WARNING)'
    )
    parser.add_argument(
        '--log-file',
        metavar='FILE',
        type=Path,
        help='Log file path (default: <data dir>/tracktime.json.log)'
    )
    parser.add_argument(
        '--no-log-json',
        action='store_true',
        help='Do not write logs in JSON format'
    )

    subparsers = parser.add_subparsers(dest='subcommand', help='Subcommand to run')

    start_parser = subparsers.add_parser('start', help='Start a timer (creating it if needed)')
    start_parser.add_argument('name', help='Timer name')

    pause_parser = subparsers.add_parser('pause', help='Pause a timer')
    pause_parser.add_argument('name', help='Timer name')

    subparsers.add_parser('pause-all', help='Pause all running timers')

    toggle_parser = subparsers.add_parser('toggle', help='Pause a running timer or start a paused one')
    toggle_parser.add_argument('name', help='Timer name')

    subparsers.add_parser('status', help="Show today's timers, totals and trends (default)")

    timeline_parser = subparsers.add_parser(
        'timeline',
        help='Show the timeline of a day',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s
  %(prog)s --date yesterday
  %(prog)s --date "2025-01-06"
        """
    )
    timeline_parser.add_argument(
        '--date',
        metavar='DATETIME',
        help='Any moment within the day to show (default: today)'
    )

    rename_parser = subparsers.add_parser('rename', help='Set the display name of a timer')
    rename_parser.add_argument('name', help='Timer name')
    rename_parser.add_argument('friendly_name', help='New display name ("" to reset)')

    delete_parser = subparsers.add_parser('delete', help='Delete a timer and all its history')
    delete_parser.add_argument('name', help='Timer name')

    order_parser = subparsers.add_parser('order', help='Set the display order of timers')
    order_parser.add_argument('names', nargs='+', help='Timer names in the desired order')

    segment_parser = subparsers.add_parser(
        'delete-segment',
        help='Remove a span of recorded time from a timer'
    )
    segment_parser.add_argument('name', help='Timer name')
    segment_parser.add_argument(
        '--from', '--since', '--begin', '--start',
        dest='start',
        metavar='DATETIME',
        required=True,
        help='Start of the span to remove'
    )
    segment_parser.add_argument(
        '--to', '--until', '--end',
        dest='end',
        metavar='DATETIME',
        required=True,
        help='End of the span to remove'
    )

    export_parser = subparsers.add_parser('export', help='Export settings and events to a JSON file')
    export_parser.add_argument('file', type=Path, help='Output file')

    import_parser = subparsers.add_parser('import', help='Replace all data with a JSON backup')
    import_parser.add_argument('file', type=Path, help='Backup file')
    import_parser.add_argument(
        '--yes', '-y',
        action='store_true',
        help='Do not ask for confirmation'
    )

    subparsers.add_parser('tray', help='Show the tray title and icon number')

    subparsers.add_parser('validate', help='Validate the settings file')

    return parser


def configure_logging(args: argparse.Namespace, subcommand: str, data_dir: Path) -> None:
    """
    Configure logging based on command-line arguments.

    Args:
        args: Parsed command-line arguments
        subcommand: The subcommand being executed
        data_dir: Data directory (home of the default log file)
    """
    log_level = getattr(logging, args.log_level, 0)
    console_log_level = getattr(logging, args.console_log_level, 0)

    log_file = None
    if args.log_file and log_level > 0:
        log_file = args.log_file
    elif log_level > 0:
        data_dir.mkdir(parents=True, exist_ok=True)
        json_postfix = '' if args.no_log_json else '.json'
        log_file = data_dir / f'tracktime{json_postfix}.log'

    run_mode = {
        'subcommand': subcommand,
        'data_dir': str(data_dir),
    }

    setup_logging(
        json_format=not args.no_log_json,
        log_level=log_level,
        console_log_level=console_log_level,
        log_file=log_file,
        run_mode=run_mode
    )


def run_delete_segment(tracker: Tracker, args: argparse.Namespace) -> int:
    start = parse_datetime_ms(args.start)
    end = parse_datetime_ms(args.end)
    if end <= start:
        print("Error: --to must be after --from", file=sys.stderr)
        return 1
    result = tracker.delete_segment(args.name, start, end)
    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1
    user_output(f"Removed {args.name} time between {args.start} and {args.end}", color='yellow')
    return 0


def confirm_import(backup: BackupData) -> bool:
    answer = input(
        f"This will replace all your current data with {len(backup.events)} events "
        f"exported at {backup.exported_at or 'an unknown time'}. Continue? [y/N] "
    )
    return answer.strip().lower() in ('y', 'yes')


def run_import(tracker: Tracker, args: argparse.Namespace) -> int:
    result = tracker.import_data(args.file, confirm=None if args.yes else confirm_import)
    if result.canceled:
        print("Import canceled")
        return 1
    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1
    user_output(f"Imported {result.events_count} events from {args.file}", color='green')
    return 0


def run_export(tracker: Tracker, args: argparse.Namespace) -> int:
    result = tracker.export_data(args.file)
    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1
    user_output(f"Exported {result.events_count} events to {result.file_path}")
    return 0


def run_tray(tracker: Tracker) -> int:
    print(f"Icon: {tracker.get_tray_icon()}")
    print(f"Title: {tracker.get_tray_title()}")
    return 0


def run_validate(data_dir: Path) -> int:
    """Execute the validate subcommand."""
    settings_path = data_dir / SETTINGS_FILE_NAME
    if not settings_path.exists():
        print(f"No settings file at {settings_path} (defaults are used)")
        return 0
    try:
        data = toml.load(settings_path)
    except (OSError, toml.TomlDecodeError) as e:
        print(f"Error: Cannot read {settings_path}: {e}", file=sys.stderr)
        return 1

    errors, warnings = validate_settings(data)
    for warning in warnings:
        print(f"  warning: {warning}")
    if errors:
        print("Settings errors found:")
        for error in errors:
            print(f"  - {error}")
        return 1
    print("Settings are valid")
    return 0


def run_command(tracker: Tracker, args: argparse.Namespace, subcommand: str) -> int:
    """Run a subcommand that operates on a tracker."""
    if subcommand == 'start':
        print(format_state(tracker.start_timer(args.name)))
    elif subcommand == 'pause':
        print(format_state(tracker.pause_timer(args.name)))
    elif subcommand == 'pause-all':
        print(format_state(tracker.pause_all()))
    elif subcommand == 'toggle':
        print(format_state(tracker.toggle_timer(args.name)))
    elif subcommand == 'status':
        print(format_state(tracker.get_state()))
    elif subcommand == 'timeline':
        date_ts = parse_datetime_ms(args.date) if args.date else None
        print(format_timeline(tracker.get_timeline(date_ts)))
    elif subcommand == 'rename':
        print(format_state(tracker.rename_timer(args.name, args.friendly_name)))
    elif subcommand == 'delete':
        print(format_state(tracker.delete_timer(args.name)))
    elif subcommand == 'order':
        tracker.update_timer_order(args.names)
        print(format_state(tracker.get_state()))
    elif subcommand == 'delete-segment':
        return run_delete_segment(tracker, args)
    elif subcommand == 'export':
        return run_export(tracker, args)
    elif subcommand == 'import':
        return run_import(tracker, args)
    elif subcommand == 'tray':
        return run_tray(tracker)
    else:
        print(f"Error: Unknown subcommand: {subcommand}", file=sys.stderr)
        return 1
    return 0


def main(argv=None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    subcommand = args.subcommand or 'status'
    data_dir = args.data_dir or get_data_dir()

    configure_logging(args, subcommand, data_dir)

    if subcommand == 'validate':
        return run_validate(data_dir)

    errors = []

    def notify_error(message: str, details: str | None) -> None:
        errors.append(message)
        user_output(f"{message}: {details}" if details else message, color='red', attrs=['bold'])

    try:
        tracker = Tracker.open(data_dir, notify_error=notify_error)
        exit_code = run_command(tracker, args, subcommand)
    except KeyboardInterrupt:
        print("\nExiting...")
        return 0
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 1 if errors and exit_code == 0 else exit_code


if __name__ == '__main__':
    sys.exit(main())
