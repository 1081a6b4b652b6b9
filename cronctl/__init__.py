"""
cronctl

List, schedule, run and delete cron events stored in an APScheduler
job store, list recurrence schedules, and test the cron dispatcher.

Features:
- One-off and recurring events keyed by hook name and arguments
- Named recurrence schedules (built-in and custom)
- Human-readable next-run and recurrence columns
- Table, JSON, CSV and id-list output
- Foreground dispatcher that fires hooks as shell commands
"""

from cronctl.events import EventStore, resolve_timestamp
from cronctl.schedules import ScheduleRegistry
from cronctl.jobs import HookExecutor, execute_hook
from cronctl.dispatcher import DispatcherService, check_dispatcher

__version__ = "0.1.0"
__all__ = [
    "EventStore",
    "resolve_timestamp",
    "ScheduleRegistry",
    "HookExecutor",
    "execute_hook",
    "DispatcherService",
    "check_dispatcher",
]
