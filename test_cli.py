import json
import logging

import pytest

from cronctl.cli import main, parse_event_args


@pytest.fixture
def cli(config_file, capsys, caplog):
    """Run cronctl with the test config and return its stdout."""
    caplog.set_level(logging.INFO)

    def run(*argv):
        capsys.readouterr()
        main(list(argv))
        return capsys.readouterr().out

    return run


def list_events(cli, fields='hook,args,schedule,recurrence'):
    return json.loads(cli('event', 'list', '--format=json', f'--fields={fields}'))


def test_parse_event_args():
    assert parse_event_args(['--foo=1', '--bar=', '--force']) == {
        'foo': '1', 'bar': '', 'force': True
    }
    with pytest.raises(ValueError, match='unrecognized arguments: stray'):
        parse_event_args(['stray'])
    with pytest.raises(ValueError):
        parse_event_args(['--=1'])


def test_schedule_and_list_event(cli, caplog):
    cli('event', 'schedule', 'cron_test', '--next-run=+1 hour', '--recurrence=hourly', '--foo=bar')

    assert "Scheduled event with hook 'cron_test' for" in caplog.text
    assert list_events(cli) == [
        {'hook': 'cron_test', 'args': {'foo': 'bar'}, 'schedule': 'hourly', 'recurrence': '1 hour'}
    ]


def test_schedule_with_unix_timestamp(cli, caplog):
    cli('event', 'schedule', 'cron_test', '--next_run=1704067200')

    assert "Scheduled event with hook 'cron_test' for 2024-01-01 00:00:00." in caplog.text
    event = list_events(cli, fields='hook,time,next_run_relative,recurrence')[0]
    assert event == {
        'hook': 'cron_test',
        'time': 1704067200,
        'next_run_relative': 'now',
        'recurrence': 'Non-repeating',
    }


def test_default_list_fields(cli):
    cli('event', 'schedule', 'cron_test', '--next-run=+2 days')
    event = json.loads(cli('event', 'list', '--format=json'))[0]
    assert list(event) == ['hook', 'next_run_gmt', 'next_run_relative', 'recurrence']


def test_list_ids(cli):
    cli('event', 'schedule', 'second', '--next-run=+2 hours')
    cli('event', 'schedule', 'first', '--next-run=+1 hour')
    assert cli('event', 'list', '--format=ids') == 'first second\n'


def test_list_empty_store(cli):
    assert cli('event', 'list', '--format=json') == '[]\n'
    assert cli('event', 'list') == ''


def test_list_unknown_field(cli, caplog):
    with pytest.raises(SystemExit) as exc_info:
        cli('event', 'list', '--fields=hook,bogus')
    assert exc_info.value.code == 1
    assert 'Invalid field(s): bogus' in caplog.text


def test_schedule_invalid_recurrence(cli, caplog):
    with pytest.raises(SystemExit) as exc_info:
        cli('event', 'schedule', 'cron_test', '--recurrence=bogus')
    assert exc_info.value.code == 1
    assert "'bogus' is not a valid schedule name for recurrence." in caplog.text
    assert cli('event', 'list', '--format=json') == '[]\n'


def test_schedule_invalid_datetime(cli, caplog):
    with pytest.raises(SystemExit) as exc_info:
        cli('event', 'schedule', 'cron_test', '--next-run=not a date')
    assert exc_info.value.code == 1
    assert "'not a date' is not a valid datetime." in caplog.text


def test_schedule_out_of_range_timestamp(cli, caplog):
    with pytest.raises(SystemExit) as exc_info:
        cli('event', 'schedule', 'cron_test', '--next-run=99999999999999999')
    assert exc_info.value.code == 1
    assert "'99999999999999999' is not a valid datetime." in caplog.text
    assert 'Event not scheduled' not in caplog.text


def test_delete_event(cli, caplog):
    cli('event', 'schedule', 'cron_test', '--next-run=+1 hour')
    cli('event', 'delete', 'cron_test')

    assert "Successfully deleted the cron event 'cron_test'" in caplog.text
    assert cli('event', 'list', '--format=json') == '[]\n'


def test_delete_without_events(cli, caplog):
    with pytest.raises(SystemExit) as exc_info:
        cli('event', 'delete', 'cron_test')
    assert exc_info.value.code == 1
    assert 'You currently have no scheduled cron events.' in caplog.text


def test_delete_unknown_hook(cli, caplog):
    cli('event', 'schedule', 'cron_test', '--next-run=+1 hour')
    with pytest.raises(SystemExit):
        cli('event', 'delete', 'other')
    assert "Failed to delete the cron event 'other'" in caplog.text


def test_run_event(cli, caplog, tmp_path):
    cli('event', 'schedule', 'write_marker', '--next-run=+1 day', '--recurrence=daily', '--name=cli')
    cli('event', 'run', 'write_marker')

    assert "Successfully executed the cron event 'write_marker'" in caplog.text
    assert (tmp_path / 'marker.txt').read_text() == 'cli'
    # Still scheduled
    assert list_events(cli, fields='hook')[0]['hook'] == 'write_marker'


def test_run_unknown_hook(cli, caplog):
    cli('event', 'schedule', 'cron_test', '--next-run=+1 hour')
    with pytest.raises(SystemExit) as exc_info:
        cli('event', 'run', 'other')
    assert exc_info.value.code == 1
    assert "Failed to execute the cron event 'other'" in caplog.text


def test_schedule_list(cli):
    assert cli('schedule', 'list', '--format=ids') == 'every_minute hourly twicedaily daily weekly\n'

    schedules = json.loads(cli('schedule', 'list', '--format=json', '--fields=name,interval'))
    assert schedules[0] == {'name': 'every_minute', 'interval': 60}
    assert [s['interval'] for s in schedules] == sorted(s['interval'] for s in schedules)


def test_dispatcher_test_with_alternate_cron(cli, caplog, monkeypatch):
    monkeypatch.setenv('CRONCTL_ALTERNATE_CRON', 'true')
    cli('test')
    assert 'Cron dispatcher is working as expected.' in caplog.text


def test_dispatcher_test_without_url(cli, caplog):
    with pytest.raises(SystemExit) as exc_info:
        cli('test')
    assert exc_info.value.code == 1
    assert 'No dispatcher URL configured' in caplog.text


def test_unrecognized_arguments(cli):
    with pytest.raises(SystemExit) as exc_info:
        cli('event', 'list', '--foo=bar')
    assert exc_info.value.code == 2


def test_missing_subcommand(cli):
    with pytest.raises(SystemExit) as exc_info:
        cli('event')
    assert exc_info.value.code == 1


def test_invalid_config_value(cli, caplog, config_file):
    config_file.write_text(json.dumps({'dispatcher_timeout': 'soon'}))
    with pytest.raises(SystemExit) as exc_info:
        cli('event', 'list')
    assert exc_info.value.code == 1
    assert "Invalid configuration: Invalid 'dispatcher_timeout'" in caplog.text


def test_run_with_malformed_hook(cli, caplog, config_file):
    cli('event', 'schedule', 'cron_test', '--next-run=+1 hour')
    config_file.write_text(json.dumps({'hooks': {'cron_test': {'command': ['echo', 'hi']}}}))
    with pytest.raises(SystemExit) as exc_info:
        cli('event', 'run', 'cron_test')
    assert exc_info.value.code == 1
    assert "Hook cron_test: 'command' must be a string" in caplog.text
