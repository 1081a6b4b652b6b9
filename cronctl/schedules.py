"""
Recurrence schedule registry.

Holds the named intervals an event can recur on: the built-in hourly,
twice daily, daily and weekly schedules plus any custom schedules from
the configuration file.
"""

import functools
import logging
from typing import Dict, List, Optional, Any

from config import Config
from models import CronSchedule
from cronctl.errors import InvalidScheduleError

logger = logging.getLogger(__name__)

DEFAULT_SCHEDULES: Dict[str, CronSchedule] = {
    'hourly': CronSchedule(name='hourly', display='Once Hourly', interval=3600),
    'twicedaily': CronSchedule(name='twicedaily', display='Twice Daily', interval=43200),
    'daily': CronSchedule(name='daily', display='Once Daily', interval=86400),
    'weekly': CronSchedule(name='weekly', display='Once Weekly', interval=604800),
}


def sort_by_interval(a: CronSchedule, b: CronSchedule) -> int:
    """Comparator ordering schedules by interval, shortest first."""
    return a.interval - b.interval


def _parse_schedule(name: str, data: Dict[str, Any]) -> CronSchedule:
    interval = data.get('interval')
    if isinstance(interval, bool) or not isinstance(interval, int) or interval <= 0:
        raise InvalidScheduleError(
            f"Schedule '{name}': 'interval' must be a positive number of seconds"
        )
    return CronSchedule(name=name, display=data.get('display') or name, interval=interval)


class ScheduleRegistry:
    """
    Named recurrence schedules.

    Custom schedules from the configuration replace built-ins of the
    same name.
    """

    def __init__(self, custom: Optional[Dict[str, Dict[str, Any]]] = None):
        self._schedules: Dict[str, CronSchedule] = dict(DEFAULT_SCHEDULES)
        for name, data in (custom or {}).items():
            self._schedules[name] = _parse_schedule(name, data)
            logger.debug(f"Registered schedule '{name}' ({self._schedules[name].interval}s)")

    @classmethod
    def from_config(cls, config: Config) -> 'ScheduleRegistry':
        return cls(config.schedules)

    def __contains__(self, name: str) -> bool:
        return name in self._schedules

    def get(self, name: str) -> CronSchedule:
        """
        Look up a schedule by name.

        Raises:
            InvalidScheduleError: If no schedule has this name
        """
        try:
            return self._schedules[name]
        except KeyError:
            raise InvalidScheduleError(
                f"'{name}' is not a valid schedule name for recurrence."
            ) from None

    def get_schedules(self) -> List[CronSchedule]:
        """Return all schedules sorted by interval."""
        return sorted(self._schedules.values(), key=functools.cmp_to_key(sort_by_interval))
