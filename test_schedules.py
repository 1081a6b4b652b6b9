import pytest

from cronctl.errors import InvalidScheduleError
from cronctl.schedules import ScheduleRegistry, sort_by_interval
from models import CronSchedule


def test_default_schedules_sorted_by_interval():
    names = [s.name for s in ScheduleRegistry().get_schedules()]
    assert names == ['hourly', 'twicedaily', 'daily', 'weekly']


def test_sort_comparator():
    short = CronSchedule('a', 'A', 60)
    long = CronSchedule('b', 'B', 3600)
    assert sort_by_interval(short, long) < 0
    assert sort_by_interval(long, short) > 0
    assert sort_by_interval(short, short) == 0


def test_custom_schedules_merged_and_sorted():
    registry = ScheduleRegistry({
        'every_minute': {'interval': 60, 'display': 'Every Minute'},
        'monthly': {'interval': 2592000},
    })
    schedules = registry.get_schedules()

    assert [s.name for s in schedules] == [
        'every_minute', 'hourly', 'twicedaily', 'daily', 'weekly', 'monthly'
    ]
    assert registry.get('monthly').display == 'monthly'
    assert 'every_minute' in registry


def test_custom_schedule_overrides_builtin():
    registry = ScheduleRegistry({'daily': {'interval': 86400, 'display': 'Every Day'}})
    assert registry.get('daily').display == 'Every Day'
    assert len(registry.get_schedules()) == 4


@pytest.mark.parametrize('interval', [0, -60, 'hourly', None, True])
def test_invalid_custom_interval(interval):
    with pytest.raises(InvalidScheduleError, match="'interval' must be a positive"):
        ScheduleRegistry({'broken': {'interval': interval}})


def test_unknown_schedule():
    with pytest.raises(InvalidScheduleError) as exc_info:
        ScheduleRegistry().get('fortnightly')
    assert str(exc_info.value) == "'fortnightly' is not a valid schedule name for recurrence."


def test_registry_from_config(cron_config):
    registry = ScheduleRegistry.from_config(cron_config)
    assert registry.get('every_minute').interval == 60
