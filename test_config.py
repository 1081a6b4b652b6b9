#!/usr/bin/env python3
"""
Tests for configuration resolution: explicit arguments, environment
variables, the config file and defaults.
"""

import json
import logging
from pathlib import Path

import pytest

import config as config_module
from config import Config, get_config, set_data_directory


def test_config_system(tmp_path, monkeypatch):
    """Test that every setting resolves from the expected source"""

    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({
        "data_dir": str(tmp_path / "from_file"),
        "timezone": "Europe/Berlin",
        "dispatcher_url": "https://file.test/cron",
        "alternate_cron": False,
        "dispatcher_timeout": 5,
    }))

    # Test 1: config file values
    config = Config(config_file=str(config_path))
    assert config.data_dir == (tmp_path / "from_file").resolve()
    assert config.data_dir.exists(), "Data directory should exist"
    assert config.timezone == "Europe/Berlin"
    assert config.dispatcher_url == "https://file.test/cron"
    assert config.dispatcher_timeout == 5.0
    assert config.job_store_url == f"sqlite:///{config.data_dir / 'cron_events.db'}"
    assert config.log_dir == config.data_dir / "logs"

    # Test 2: environment overrides the config file
    monkeypatch.setenv("CRONCTL_DATA_DIR", str(tmp_path / "from_env"))
    monkeypatch.setenv("CRONCTL_TIMEZONE", "Asia/Tokyo")
    monkeypatch.setenv("CRONCTL_DISPATCHER_URL", "https://env.test/cron")
    monkeypatch.setenv("CRONCTL_ALTERNATE_CRON", "yes")
    monkeypatch.setenv("CRONCTL_SSL_VERIFY", "0")
    monkeypatch.setenv("CRONCTL_JOB_STORE_URL", "sqlite:///:memory:")
    config = Config(config_file=str(config_path))
    assert config.data_dir == (tmp_path / "from_env").resolve()
    assert config.timezone == "Asia/Tokyo"
    assert config.dispatcher_url == "https://env.test/cron"
    assert config.alternate_cron is True
    assert config.ssl_verify is False
    assert config.job_store_url == "sqlite:///:memory:"

    # Test 3: explicit data_dir beats everything
    config = Config(data_dir=str(tmp_path / "explicit"), config_file=str(config_path))
    assert config.data_dir == (tmp_path / "explicit").resolve()


def test_config_file_from_environment(tmp_path, monkeypatch):
    config_path = tmp_path / "custom.json"
    config_path.write_text(json.dumps({"hooks": {"cron_test": "echo hi"}}))
    monkeypatch.setenv("CRONCTL_CONFIG", str(config_path))
    monkeypatch.setenv("CRONCTL_DATA_DIR", str(tmp_path / "data"))

    config = Config()
    assert config.config_file == config_path
    assert config.hooks == {"cron_test": "echo hi"}
    assert config.schedules == {}


def test_defaults(tmp_path, monkeypatch):
    monkeypatch.setattr(config_module, "DEFAULT_DATA_DIR", str(tmp_path / "default"))

    config = Config(config_file=str(tmp_path / "missing.json"))
    assert config.data_dir == (tmp_path / "default").resolve()
    assert config.timezone == "UTC"
    assert config.dispatcher_url is None
    assert config.alternate_cron is False
    assert config.ssl_verify is True
    assert config.dispatcher_timeout == 3.0


def test_invalid_config_file_falls_back(tmp_path, caplog):
    config_path = tmp_path / "broken.json"
    config_path.write_text("{not json")

    with caplog.at_level(logging.WARNING):
        config = Config(data_dir=str(tmp_path / "data"), config_file=str(config_path))

    assert "Failed to load config file" in caplog.text
    assert config.hooks == {}


def test_save_config_keeps_other_settings(tmp_path, monkeypatch):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"timezone": "Europe/Paris"}))
    monkeypatch.setenv("CRONCTL_CONFIG", str(config_path))

    config = set_data_directory(str(tmp_path / "saved"), save=True)

    saved = json.loads(config_path.read_text())
    assert saved == {"timezone": "Europe/Paris", "data_dir": str(config.data_dir)}
    assert get_config() is config
    assert Path(saved["data_dir"]).exists()


@pytest.mark.parametrize('value', ['soon', 0, -1, True, None])
def test_invalid_dispatcher_timeout(tmp_path, value):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"dispatcher_timeout": value}))

    with pytest.raises(ValueError, match="Invalid 'dispatcher_timeout'"):
        Config(data_dir=str(tmp_path / "data"), config_file=str(config_path))


def test_config_cli_show(tmp_path, monkeypatch, capsys):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({
        "dispatcher_url": "https://file.test/cron",
        "hooks": {"cron_test": "echo hi"},
    }))
    monkeypatch.setenv("CRONCTL_CONFIG", str(config_path))
    monkeypatch.setenv("CRONCTL_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setattr("sys.argv", ["cronctl-config", "--show"])

    config_module.main()

    out = capsys.readouterr().out
    assert "Current configuration:" in out
    assert f"Data directory: {(tmp_path / 'data').resolve()}" in out
    assert "Dispatcher:     https://file.test/cron" in out
    assert "Hooks:          1 registered" in out


def test_config_cli_set_dir(tmp_path, monkeypatch, capsys):
    config_path = tmp_path / "config.json"
    monkeypatch.setenv("CRONCTL_CONFIG", str(config_path))
    monkeypatch.setattr("sys.argv", ["cronctl-config", "--set-dir", str(tmp_path / "chosen")])

    config_module.main()

    out = capsys.readouterr().out
    chosen = (tmp_path / "chosen").resolve()
    assert f"Data directory set to: {chosen}" in out
    assert f"Configuration saved to: {config_path}" in out
    assert json.loads(config_path.read_text()) == {"data_dir": str(chosen)}
