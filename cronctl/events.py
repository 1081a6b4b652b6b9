"""
Cron event storage on top of APScheduler.

Events live in an APScheduler SQLAlchemy job store (SQLite by default).
The scheduler used here is started paused: it only reads and writes the
job store and never fires jobs itself. Firing is the job of the
dispatcher service (see cronctl.dispatcher).
"""

import hashlib
import json
import logging
import re
import time
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Optional, Dict, Any, List, Union
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from apscheduler.jobstores.base import JobLookupError
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from config import Config, get_config
from durations import format_duration
from models import CronEvent, NON_REPEATING
from cronctl.errors import InvalidDatetimeError, NoEventsError, HookExecutionError
from cronctl.jobs import HookExecutor, execute_hook
from cronctl.schedules import ScheduleRegistry

logger = logging.getLogger(__name__)

TIME_FORMAT = '%Y-%m-%d %H:%M:%S'

# Relative offsets: unit -> (relativedelta keyword, multiplier)
_RELATIVE_UNITS = {
    'second': ('seconds', 1),
    'sec': ('seconds', 1),
    'minute': ('minutes', 1),
    'min': ('minutes', 1),
    'hour': ('hours', 1),
    'day': ('days', 1),
    'week': ('weeks', 1),
    'fortnight': ('weeks', 2),
    'month': ('months', 1),
    'year': ('years', 1),
}
_UNIT_PATTERN = '|'.join(sorted(_RELATIVE_UNITS, key=len, reverse=True))
_OFFSET_RE = re.compile(rf'([+-]?)\s*(\d+)\s*({_UNIT_PATTERN})s?\b')
_NEXT_LAST_RE = re.compile(rf'(next|last)\s+({_UNIT_PATTERN})s?')
_NUMERIC_RE = re.compile(r'[+-]?\d+(\.\d+)?')


def ensure_sqlite_dir(url: str):
    """Create the parent directory of a SQLite job store file."""
    if url.startswith('sqlite:///'):
        path = url[len('sqlite:///'):]
        if path and path != ':memory:':
            Path(path).parent.mkdir(parents=True, exist_ok=True)


def event_signature(args: Optional[Dict[str, Any]]) -> str:
    """md5 of the canonical JSON form of an event's arguments."""
    payload = json.dumps(args or {}, sort_keys=True, default=str)
    return hashlib.md5(payload.encode('utf-8')).hexdigest()


def _parse_relative(text: str, now: datetime) -> Optional[datetime]:
    """Resolve English relative phrases such as '+1 hour' or '2 days ago'."""
    text = text.strip().lower()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if text == 'now':
        return now
    if text in ('today', 'midnight'):
        return midnight
    if text == 'tomorrow':
        return midnight + relativedelta(days=1)
    if text == 'yesterday':
        return midnight - relativedelta(days=1)

    match = _NEXT_LAST_RE.fullmatch(text)
    if match:
        keyword, multiplier = _RELATIVE_UNITS[match.group(2)]
        step = multiplier if match.group(1) == 'next' else -multiplier
        return now + relativedelta(**{keyword: step})

    ago = text.endswith(' ago')
    if ago:
        text = text[:-len(' ago')]

    delta = relativedelta()
    position = 0
    matched = False
    for match in _OFFSET_RE.finditer(text):
        if text[position:match.start()].strip():
            return None
        keyword, multiplier = _RELATIVE_UNITS[match.group(3)]
        amount = int(match.group(2)) * multiplier
        if match.group(1) == '-':
            amount = -amount
        delta += relativedelta(**{keyword: amount})
        position = match.end()
        matched = True

    if not matched or text[position:].strip():
        return None

    return now - delta if ago else now + delta


def resolve_timestamp(
    value: Union[str, int, float, None],
    now: Optional[float] = None,
    tz: Optional[tzinfo] = None
) -> int:
    """
    Resolve a --next-run value to a Unix timestamp.

    Accepts a Unix timestamp, an English relative phrase ('now',
    'tomorrow', '+1 hour', '3 days ago', 'next week') or an absolute
    datetime string. Naive datetimes are taken in the given timezone.

    Args:
        value: The value to resolve. None means now.
        now: Reference Unix time (default: current time)
        tz: Site timezone (default: UTC)

    Returns:
        Unix timestamp in seconds

    Raises:
        InvalidDatetimeError: If the value cannot be parsed or resolves to zero
    """
    now = time.time() if now is None else now
    tz = tz or timezone.utc

    if value is None:
        return int(now)

    if isinstance(value, (int, float)) or _NUMERIC_RE.fullmatch(str(value).strip()):
        try:
            timestamp = abs(int(float(value)))
            datetime.fromtimestamp(timestamp, timezone.utc)
        except (ValueError, OverflowError, OSError) as e:
            raise InvalidDatetimeError(value) from e
        if not timestamp:
            raise InvalidDatetimeError(value)
        return timestamp

    reference = datetime.fromtimestamp(now, tz)
    try:
        resolved = _parse_relative(str(value), reference)
    except (ValueError, OverflowError) as e:
        raise InvalidDatetimeError(value) from e

    if resolved is None:
        try:
            resolved = date_parser.parse(
                str(value),
                default=reference.replace(hour=0, minute=0, second=0, microsecond=0, tzinfo=None)
            )
        except (ValueError, OverflowError) as e:
            raise InvalidDatetimeError(value) from e
        if resolved.tzinfo is None:
            resolved = resolved.replace(tzinfo=tz)

    try:
        timestamp = int(resolved.timestamp())
    except (ValueError, OverflowError, OSError) as e:
        raise InvalidDatetimeError(value) from e
    if timestamp <= 0:
        raise InvalidDatetimeError(value)
    return timestamp


def format_event(job, now: float, tz: tzinfo) -> CronEvent:
    """Build a CronEvent with display fields from an APScheduler job."""
    kwargs = job.kwargs or {}
    args = kwargs.get('args') or {}
    schedule = kwargs.get('schedule')
    timestamp = int(job.next_run_time.timestamp())

    interval = None
    if isinstance(job.trigger, IntervalTrigger):
        interval = int(job.trigger.interval.total_seconds())

    return CronEvent(
        hook=kwargs.get('hook', job.name),
        time=timestamp,
        sig=event_signature(args),
        args=args,
        schedule=schedule,
        interval=interval,
        id=job.id,
        next_run=datetime.fromtimestamp(timestamp, tz).strftime(TIME_FORMAT),
        next_run_gmt=datetime.fromtimestamp(timestamp, timezone.utc).strftime(TIME_FORMAT),
        next_run_relative=format_duration(timestamp - int(now)),
        recurrence=format_duration(interval) if schedule and interval else NON_REPEATING,
    )


class EventStore:
    """
    Reads and writes cron events in the APScheduler job store.

    Use as a context manager, or call open() before and close() after.

        with EventStore(config) as store:
            store.schedule_single_event(timestamp, 'cron_test', {})
            events = store.get_cron_events()
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        job_store_url: Optional[str] = None,
        registry: Optional[ScheduleRegistry] = None
    ):
        """
        Initialize the event store.

        Args:
            config: Configuration (default: global config)
            job_store_url: SQLAlchemy URL overriding config.job_store_url
            registry: Schedule registry (default: built from config)
        """
        self.config = config or get_config()
        self.job_store_url = job_store_url or self.config.job_store_url
        self.timezone = ZoneInfo(self.config.timezone)
        self.registry = registry or ScheduleRegistry.from_config(self.config)

        ensure_sqlite_dir(self.job_store_url)

        self.scheduler = BackgroundScheduler(
            jobstores={'default': SQLAlchemyJobStore(url=self.job_store_url)},
            timezone=timezone.utc,
            job_defaults={
                'coalesce': True,  # Combine missed runs of a recurring event into one
                'max_instances': 1,
                'misfire_grace_time': None  # Overdue events still run
            }
        )

    def open(self) -> 'EventStore':
        if not self.scheduler.running:
            self.scheduler.start(paused=True)
            logger.debug(f"Opened job store: {self.job_store_url}")
        return self

    def close(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def __enter__(self) -> 'EventStore':
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _add_event(
        self,
        timestamp: int,
        hook: str,
        args: Optional[Dict[str, Any]],
        trigger,
        schedule: Optional[str]
    ) -> CronEvent:
        args = args or {}
        job_id = f"{hook}-{event_signature(args)}-{timestamp}"
        job = self.scheduler.add_job(
            execute_hook,
            trigger=trigger,
            id=job_id,
            name=hook,
            kwargs={'hook': hook, 'args': args, 'schedule': schedule},
            replace_existing=True
        )
        logger.debug(f"Stored event '{job_id}' (schedule: {schedule or 'single'})")
        return format_event(job, time.time(), self.timezone)

    def schedule_single_event(
        self,
        timestamp: int,
        hook: str,
        args: Optional[Dict[str, Any]] = None
    ) -> CronEvent:
        """Schedule a one-off event for the given Unix time."""
        trigger = DateTrigger(run_date=datetime.fromtimestamp(timestamp, timezone.utc))
        return self._add_event(timestamp, hook, args, trigger, None)

    def schedule_event(
        self,
        timestamp: int,
        recurrence: str,
        hook: str,
        args: Optional[Dict[str, Any]] = None
    ) -> CronEvent:
        """
        Schedule a recurring event, first running at the given Unix time.

        Raises:
            InvalidScheduleError: If recurrence is not a registered schedule
        """
        schedule = self.registry.get(recurrence)
        trigger = IntervalTrigger(
            seconds=schedule.interval,
            start_date=datetime.fromtimestamp(timestamp, timezone.utc),
            timezone=timezone.utc
        )
        return self._add_event(timestamp, hook, args, trigger, schedule.name)

    def get_cron_events(self, now: Optional[float] = None) -> List[CronEvent]:
        """
        Fetch all scheduled events, soonest first.

        Raises:
            NoEventsError: If no events are scheduled
        """
        now = time.time() if now is None else now
        events = [
            format_event(job, now, self.timezone)
            for job in self.scheduler.get_jobs()
            if job.next_run_time is not None
        ]

        if not events:
            raise NoEventsError()

        events.sort(key=lambda e: (e.time, e.hook))
        return events

    def find_event(self, hook: str, now: Optional[float] = None) -> Optional[CronEvent]:
        """
        Return the next scheduled event for a hook, or None.

        Raises:
            NoEventsError: If no events are scheduled at all
        """
        for event in self.get_cron_events(now):
            if event.hook == hook:
                return event
        return None

    def delete_event(self, event: CronEvent) -> bool:
        """
        Delete an event from the job store.

        Returns:
            True if removed, False if it was no longer stored
        """
        try:
            self.scheduler.remove_job(event.id)
        except JobLookupError:
            logger.warning(f"Event '{event.id}' is no longer scheduled")
            return False

        logger.debug(f"Removed event '{event.id}'")
        return True

    def run_event(self, event: CronEvent, executor: Optional[HookExecutor] = None) -> bool:
        """
        Execute an event's hook immediately, leaving its schedule untouched.

        Returns:
            True if the hook ran successfully, False if it failed
        """
        executor = executor or HookExecutor()
        try:
            executor.run_hook(event.hook, args=event.args, schedule=event.schedule, config=self.config)
        except HookExecutionError as e:
            logger.error(f"[{event.hook}] {e}")
            return False
        return True
