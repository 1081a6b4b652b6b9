"""
Command-line interface for cron event management.

Provides CLI commands for:
- Listing, scheduling, running and deleting cron events
- Listing the available recurrence schedules
- Testing that the cron dispatcher endpoint is reachable
- Running the dispatcher in the foreground
"""

import argparse
import dataclasses
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, List, Optional
from zoneinfo import ZoneInfo

from config import Config
from formatter import Formatter, FORMATS
from models import CronEvent, CronSchedule
from cronctl.dispatcher import DispatcherService, check_dispatcher
from cronctl.errors import CronError, NoEventsError, DispatcherError
from cronctl.events import EventStore, resolve_timestamp, TIME_FORMAT
from cronctl.schedules import ScheduleRegistry

logger = logging.getLogger(__name__)

EVENT_FIELDS = [f.name for f in dataclasses.fields(CronEvent)]
EVENT_DEFAULT_FIELDS = ['hook', 'next_run_gmt', 'next_run_relative', 'recurrence']
SCHEDULE_FIELDS = [f.name for f in dataclasses.fields(CronSchedule)]


def setup_logging(log_file: str = None, verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Replace handlers from an earlier call
    for handler in [h for h in root_logger.handlers if getattr(h, '_cronctl', False)]:
        root_logger.removeHandler(handler)
        handler.close()

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    console_handler._cronctl = True
    root_logger.addHandler(console_handler)

    # File handler
    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
        ))
        file_handler._cronctl = True
        root_logger.addHandler(file_handler)


def parse_event_args(tokens: List[str]) -> Dict[str, Any]:
    """
    Turn extra --key=value options into event arguments.

    A bare --flag becomes True.

    Raises:
        ValueError: For anything that is not a --key or --key=value option
    """
    event_args = {}
    for token in tokens:
        if not token.startswith('--') or len(token) == 2:
            raise ValueError(f"unrecognized arguments: {token}")
        key, sep, value = token[2:].partition('=')
        if not key:
            raise ValueError(f"unrecognized arguments: {token}")
        event_args[key] = value if sep else True
    return event_args


def _fail(message: str):
    logger.error(message)
    sys.exit(1)


def _load_config(args) -> Config:
    try:
        config = Config(data_dir=args.data_dir, config_file=args.config)
    except ValueError as e:
        _fail(f"Invalid configuration: {e}")
    Config._instance = config
    return config


def cmd_event_list(args):
    """List scheduled cron events."""
    setup_logging(verbose=args.verbose)

    try:
        formatter = Formatter(args.fields, args.format, EVENT_DEFAULT_FIELDS, EVENT_FIELDS, 'hook')
    except ValueError as e:
        _fail(str(e))

    config = _load_config(args)
    try:
        with EventStore(config) as store:
            try:
                events = store.get_cron_events()
            except NoEventsError:
                events = []
    except Exception as e:
        logger.error(f"Failed to list events: {e}", exc_info=args.verbose)
        sys.exit(1)

    formatter.display_items([event.to_dict() for event in events])


def cmd_event_schedule(args):
    """Schedule a new cron event."""
    setup_logging(verbose=args.verbose)
    config = _load_config(args)

    try:
        timestamp = resolve_timestamp(args.next_run, tz=ZoneInfo(config.timezone))

        with EventStore(config) as store:
            if args.recurrence:
                store.schedule_event(timestamp, args.recurrence, args.hook, args.event_args)
            else:
                store.schedule_single_event(timestamp, args.hook, args.event_args)

    except CronError as e:
        _fail(str(e))
    except Exception as e:
        logger.error(f"Event not scheduled: {e}", exc_info=args.verbose)
        sys.exit(1)

    when = datetime.fromtimestamp(timestamp, timezone.utc).strftime(TIME_FORMAT)
    logger.info(f"Scheduled event with hook '{args.hook}' for {when}.")


def cmd_event_run(args):
    """Run the next scheduled cron event for the given hook."""
    setup_logging(verbose=args.verbose)
    config = _load_config(args)

    try:
        with EventStore(config) as store:
            event = store.find_event(args.hook)
            result = event is not None and store.run_event(event)
    except CronError as e:
        _fail(str(e))
    except Exception as e:
        logger.error(f"Failed to execute the cron event '{args.hook}': {e}", exc_info=args.verbose)
        sys.exit(1)

    if result:
        logger.info(f"Successfully executed the cron event '{args.hook}'")
    else:
        _fail(f"Failed to execute the cron event '{args.hook}'")


def cmd_event_delete(args):
    """Delete the next scheduled cron event for the given hook."""
    setup_logging(verbose=args.verbose)
    config = _load_config(args)

    try:
        with EventStore(config) as store:
            event = store.find_event(args.hook)
            result = event is not None and store.delete_event(event)
    except CronError as e:
        _fail(str(e))
    except Exception as e:
        logger.error(f"Failed to delete the cron event '{args.hook}': {e}", exc_info=args.verbose)
        sys.exit(1)

    if result:
        logger.info(f"Successfully deleted the cron event '{args.hook}'")
    else:
        _fail(f"Failed to delete the cron event '{args.hook}'")


def cmd_schedule_list(args):
    """List available cron schedules, shortest interval first."""
    setup_logging(verbose=args.verbose)

    try:
        formatter = Formatter(args.fields, args.format, SCHEDULE_FIELDS, SCHEDULE_FIELDS, 'name')
        registry = ScheduleRegistry.from_config(_load_config(args))
    except (ValueError, CronError) as e:
        _fail(str(e))

    formatter.display_items([schedule.to_dict() for schedule in registry.get_schedules()])


def cmd_test(args):
    """Test the cron dispatcher and report back any errors."""
    setup_logging(verbose=args.verbose)
    config = _load_config(args)

    try:
        check_dispatcher(config)
    except DispatcherError as e:
        _fail(str(e))

    logger.info("Cron dispatcher is working as expected.")


def cmd_dispatch(args):
    """Run the cron dispatcher in the foreground."""
    config = _load_config(args)
    setup_logging(
        log_file=args.log_file or str(config.log_dir / "dispatcher.log"),
        verbose=args.verbose
    )

    try:
        service = DispatcherService(config, max_workers=args.workers)
        logger.info("Press Ctrl+C to stop.")
        service.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Failed to start dispatcher: {e}", exc_info=True)
        sys.exit(1)


def _add_output_options(parser: argparse.ArgumentParser, fields: List[str]):
    parser.add_argument(
        '--fields',
        type=str,
        help=f"Limit the output to specific fields. Available fields: {', '.join(fields)}"
    )
    parser.add_argument(
        '--format',
        type=str,
        choices=FORMATS,
        default='table',
        help='Output format (default: table)'
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='cronctl',
        description="cronctl - Manage cron events and schedules",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        '-c', '--config',
        type=str,
        help='Path to configuration file'
    )
    parser.add_argument(
        '--data-dir',
        type=str,
        help='Base data directory'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Event commands
    event_parser = subparsers.add_parser('event', help='Manage cron events')
    event_subparsers = event_parser.add_subparsers(dest='event_command', help='Event commands')

    list_parser = event_subparsers.add_parser('list', help='List scheduled cron events')
    _add_output_options(list_parser, EVENT_FIELDS)
    list_parser.set_defaults(func=cmd_event_list)

    schedule_parser = event_subparsers.add_parser(
        'schedule',
        help='Schedule a new cron event',
        description="Extra --<field>=<value> options are stored as event arguments.",
        allow_abbrev=False
    )
    schedule_parser.add_argument('hook', help='The hook name')
    schedule_parser.add_argument(
        '--next-run', '--next_run',
        dest='next_run',
        type=str,
        help='A Unix timestamp or an English textual datetime description. Defaults to now.'
    )
    schedule_parser.add_argument(
        '--recurrence',
        type=str,
        help="How often the event should recur. See 'cronctl schedule list'. Defaults to no recurrence."
    )
    schedule_parser.set_defaults(func=cmd_event_schedule, accepts_event_args=True)

    run_parser = event_subparsers.add_parser('run', help='Run the next scheduled cron event for a hook')
    run_parser.add_argument('hook', help='The hook name')
    run_parser.set_defaults(func=cmd_event_run)

    delete_parser = event_subparsers.add_parser('delete', help='Delete the next scheduled cron event for a hook')
    delete_parser.add_argument('hook', help='The hook name')
    delete_parser.set_defaults(func=cmd_event_delete)

    # Schedule commands
    schedules_parser = subparsers.add_parser('schedule', help='Manage cron schedules')
    schedules_subparsers = schedules_parser.add_subparsers(dest='schedule_command', help='Schedule commands')

    schedule_list_parser = schedules_subparsers.add_parser('list', help='List available cron schedules')
    _add_output_options(schedule_list_parser, SCHEDULE_FIELDS)
    schedule_list_parser.set_defaults(func=cmd_schedule_list)

    # Test command
    test_parser = subparsers.add_parser('test', help='Test the cron dispatcher')
    test_parser.set_defaults(func=cmd_test)

    # Dispatch command
    dispatch_parser = subparsers.add_parser('dispatch', help='Run the cron dispatcher in the foreground')
    dispatch_parser.add_argument(
        '--workers',
        type=int,
        default=5,
        help='Maximum concurrent hook executions (default: 5)'
    )
    dispatch_parser.add_argument(
        '--log-file',
        type=str,
        help='Log file path'
    )
    dispatch_parser.set_defaults(func=cmd_dispatch)

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args, extra = parser.parse_known_args(argv)

    if not hasattr(args, 'func'):
        parser.print_help()
        sys.exit(1)

    if getattr(args, 'accepts_event_args', False):
        try:
            args.event_args = parse_event_args(extra)
        except ValueError as e:
            parser.error(str(e))
    elif extra:
        parser.error(f"unrecognized arguments: {' '.join(extra)}")

    args.func(args)


if __name__ == '__main__':
    main()
