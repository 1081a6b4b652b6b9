"""
Data models for cron events and recurrence schedules.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any

NON_REPEATING = "Non-repeating"


@dataclass
class CronEvent:
    """A scheduled hook invocation, as stored in the job store"""
    hook: str
    time: int  # Unix timestamp of the next run (UTC)
    sig: str  # md5 of the event args, identifies events sharing a hook
    args: Dict[str, Any] = field(default_factory=dict)
    schedule: Optional[str] = None  # Recurrence schedule name, None for one-off events
    interval: Optional[int] = None  # Recurrence interval in seconds
    id: Optional[str] = None  # Job store key
    next_run: str = ''  # Site timezone, Y-m-d H:i:s
    next_run_gmt: str = ''  # UTC, Y-m-d H:i:s
    next_run_relative: str = ''  # e.g. "2 hours 5 minutes"
    recurrence: str = NON_REPEATING  # e.g. "1 day", or "Non-repeating"

    @property
    def is_recurring(self) -> bool:
        return self.schedule is not None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CronSchedule:
    """A named recurrence interval"""
    name: str
    display: str
    interval: int  # seconds

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
