"""
Configuration management for cron event storage and dispatch.

This module provides a centralized configuration system. The job store,
log files and settings for the HTTP dispatcher are all resolved here, from
explicit arguments, environment variables (optionally loaded from a .env
file), a JSON config file and finally built-in defaults.
"""

import os
import json
from pathlib import Path
from typing import Optional, Dict, Any
import logging

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# Default locations
DEFAULT_DATA_DIR = os.path.expanduser("~/.cronctl")
CONFIG_FILE = os.path.expanduser("~/.cronctl/config.json")

# Environment variables
ENV_CONFIG_FILE = "CRONCTL_CONFIG"
ENV_DATA_DIR = "CRONCTL_DATA_DIR"
ENV_JOB_STORE_URL = "CRONCTL_JOB_STORE_URL"
ENV_TIMEZONE = "CRONCTL_TIMEZONE"
ENV_DISPATCHER_URL = "CRONCTL_DISPATCHER_URL"
ENV_ALTERNATE_CRON = "CRONCTL_ALTERNATE_CRON"
ENV_SSL_VERIFY = "CRONCTL_SSL_VERIFY"

DEFAULT_TIMEZONE = "UTC"
DEFAULT_DISPATCHER_TIMEOUT = 3

_TRUE_VALUES = ('1', 'true', 'yes', 'on')


def _parse_flag(value: Any) -> bool:
    """Interpret a config or environment value as a boolean."""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def _parse_timeout(value: Any) -> float:
    """
    Interpret the dispatcher timeout setting.

    Raises:
        ValueError: If the value is not a positive number of seconds
    """
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        timeout = None
    if isinstance(value, bool) or timeout is None or not timeout > 0:
        raise ValueError(
            f"Invalid 'dispatcher_timeout' {value!r}: must be a positive number of seconds"
        )
    return timeout


class Config:
    """
    Configuration manager for cronctl.

    Data directory resolution order (highest to lowest priority):
    1. Explicitly passed data_dir parameter
    2. CRONCTL_DATA_DIR environment variable
    3. Config file (~/.cronctl/config.json, or CRONCTL_CONFIG)
    4. Default (~/.cronctl)

    Every other setting is read from the config file and can be
    overridden by its CRONCTL_* environment variable.

    Directory structure:
        {data_dir}/
        ├── cron_events.db     # APScheduler job store (default)
        └── logs/              # Dispatcher logs
    """

    _instance: Optional['Config'] = None

    def __init__(self, data_dir: Optional[str] = None, config_file: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            data_dir: Base directory for all data storage. If None, will be
                     resolved from environment variable, config file, or default.
            config_file: Path to the JSON config file. If None, uses
                     CRONCTL_CONFIG or the default location.
        """
        self.config_file = self._resolve_config_file(config_file)
        file_data = self._load_from_config_file()

        self.data_dir = self._resolve_data_dir(data_dir, file_data)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.log_dir = self.data_dir / "logs"

        self.job_store_url: str = (
            os.getenv(ENV_JOB_STORE_URL)
            or file_data.get('job_store_url')
            or f"sqlite:///{self.data_dir / 'cron_events.db'}"
        )
        self.timezone: str = (
            os.getenv(ENV_TIMEZONE) or file_data.get('timezone') or DEFAULT_TIMEZONE
        )
        self.dispatcher_url: Optional[str] = (
            os.getenv(ENV_DISPATCHER_URL) or file_data.get('dispatcher_url')
        )
        self.alternate_cron: bool = _parse_flag(
            os.getenv(ENV_ALTERNATE_CRON, file_data.get('alternate_cron', False))
        )
        self.ssl_verify: bool = _parse_flag(
            os.getenv(ENV_SSL_VERIFY, file_data.get('ssl_verify', True))
        )
        self.dispatcher_timeout: float = _parse_timeout(
            file_data.get('dispatcher_timeout', DEFAULT_DISPATCHER_TIMEOUT)
        )
        self.schedules: Dict[str, Dict[str, Any]] = file_data.get('schedules', {})
        self.hooks: Dict[str, Any] = file_data.get('hooks', {})

        logger.debug(f"cronctl data directory: {self.data_dir}")
        logger.debug(f"  Job store: {self.job_store_url}")
        logger.debug(f"  Timezone: {self.timezone}")
        logger.debug(f"  Dispatcher: {self.dispatcher_url}")

    def _resolve_config_file(self, config_file: Optional[str]) -> Path:
        if config_file:
            return Path(config_file).expanduser()
        env_file = os.getenv(ENV_CONFIG_FILE)
        if env_file:
            return Path(env_file).expanduser()
        return Path(CONFIG_FILE).expanduser()

    def _resolve_data_dir(self, data_dir: Optional[str], file_data: Dict[str, Any]) -> Path:
        """
        Resolve data directory from multiple sources.

        Priority:
        1. Explicitly passed data_dir
        2. CRONCTL_DATA_DIR environment variable
        3. Config file
        4. Default
        """
        # 1. Explicit parameter (highest priority)
        if data_dir:
            logger.debug(f"Using explicitly provided data_dir: {data_dir}")
            return Path(data_dir).expanduser().resolve()

        # 2. Environment variable
        env_dir = os.getenv(ENV_DATA_DIR)
        if env_dir:
            logger.debug(f"Using data_dir from {ENV_DATA_DIR}: {env_dir}")
            return Path(env_dir).expanduser().resolve()

        # 3. Config file
        config_dir = file_data.get('data_dir')
        if config_dir:
            logger.debug(f"Using data_dir from config file: {config_dir}")
            return Path(config_dir).expanduser().resolve()

        # 4. Default
        logger.debug(f"Using default data_dir: {DEFAULT_DATA_DIR}")
        return Path(DEFAULT_DATA_DIR).expanduser().resolve()

    def _load_from_config_file(self) -> Dict[str, Any]:
        """Load settings from the config file if it exists."""
        try:
            if self.config_file.exists():
                with open(self.config_file, 'r') as f:
                    return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load config file {self.config_file}: {e}")
        return {}

    def save_config(self):
        """Save the data directory to the config file, keeping other settings."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)

        config_data = self._load_from_config_file()
        config_data['data_dir'] = str(self.data_dir)

        with open(self.config_file, 'w') as f:
            json.dump(config_data, f, indent=2)

        logger.info(f"Saved configuration to {self.config_file}")

    @classmethod
    def get_instance(cls, data_dir: Optional[str] = None) -> 'Config':
        """
        Get or create singleton Config instance.

        Args:
            data_dir: Base directory for data storage

        Returns:
            Config instance
        """
        if cls._instance is None or data_dir is not None:
            cls._instance = Config(data_dir)
        return cls._instance

    def __repr__(self):
        return f"Config(data_dir={self.data_dir}, job_store_url={self.job_store_url})"


def get_config(data_dir: Optional[str] = None) -> Config:
    """
    Get the global configuration instance.

    Args:
        data_dir: Optional data directory to use. If provided, will create
                 a new Config instance with this directory.

    Returns:
        Config instance
    """
    return Config.get_instance(data_dir)


def set_data_directory(data_dir: str, save: bool = True) -> Config:
    """
    Set the data directory and optionally save to config file.

    Args:
        data_dir: Path to base data directory
        save: If True, save configuration to config file

    Returns:
        Config instance
    """
    config = Config(data_dir)
    Config._instance = config

    if save:
        config.save_config()

    return config


def main():
    """CLI for managing configuration"""
    import argparse

    parser = argparse.ArgumentParser(description="Manage cronctl configuration")
    parser.add_argument(
        '--set-dir',
        type=str,
        help='Set data directory and save to config'
    )
    parser.add_argument(
        '--show',
        action='store_true',
        help='Show current configuration'
    )

    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)

    if args.set_dir:
        config = set_data_directory(args.set_dir, save=True)
        print(f"✓ Data directory set to: {config.data_dir}")
        print(f"✓ Configuration saved to: {config.config_file}")
    elif args.show:
        config = get_config()
        print("Current configuration:")
        print(f"  Config file:    {config.config_file}")
        print(f"  Data directory: {config.data_dir}")
        print(f"  Job store:      {config.job_store_url}")
        print(f"  Timezone:       {config.timezone}")
        print(f"  Dispatcher:     {config.dispatcher_url or '(not configured)'}")
        print(f"  Alternate cron: {config.alternate_cron}")
        print(f"  Schedules:      {len(config.schedules)} custom")
        print(f"  Hooks:          {len(config.hooks)} registered")
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
