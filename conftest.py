import json

import pytest

import config as config_module
from config import Config

CRONCTL_ENV_VARS = [
    config_module.ENV_CONFIG_FILE,
    config_module.ENV_DATA_DIR,
    config_module.ENV_JOB_STORE_URL,
    config_module.ENV_TIMEZONE,
    config_module.ENV_DISPATCHER_URL,
    config_module.ENV_ALTERNATE_CRON,
    config_module.ENV_SSL_VERIFY,
]


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep CRONCTL_* settings from the real environment out of tests."""
    for var in CRONCTL_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    yield
    Config._instance = None


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """A config file with one custom schedule and one hook, wired up via env."""
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "schedules": {
            "every_minute": {"interval": 60, "display": "Every Minute"}
        },
        "hooks": {
            "write_marker": {
                "command": 'printf "%s" "$CRON_ARG_NAME" > marker.txt',
                "working_dir": str(tmp_path),
                "timeout": 10
            }
        }
    }))
    monkeypatch.setenv(config_module.ENV_CONFIG_FILE, str(path))
    monkeypatch.setenv(config_module.ENV_DATA_DIR, str(tmp_path / "data"))
    return path


@pytest.fixture
def cron_config(config_file):
    return Config()
