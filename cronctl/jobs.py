"""
Command execution for cron hooks.

A hook is a name; the configuration maps it to a shell command. When an
event fires, its hook's command runs with the event arguments exported as
environment variables. A hook with no registered command does nothing.
"""

import json
import logging
import os
import re
import subprocess
from dataclasses import dataclass
from typing import Dict, Any, Optional

from config import Config, get_config
from cronctl.errors import HookExecutionError

logger = logging.getLogger(__name__)


@dataclass
class HookConfig:
    """Shell command registered for a hook."""
    name: str
    command: str
    timeout: int = 3600  # Command timeout in seconds (default: 1 hour)
    working_dir: Optional[str] = None


def load_hooks(config: Config) -> Dict[str, HookConfig]:
    """
    Parse the hooks section of the configuration.

    Each entry is either a command string or an object with 'command',
    'timeout' and 'working_dir' keys.

    Raises:
        ValueError: If a hook entry is malformed or has an empty command
    """
    hooks = {}
    for name, data in config.hooks.items():
        if isinstance(data, str):
            data = {'command': data}
        if not isinstance(data, dict):
            raise ValueError(f"Hook {name}: must be a command string or an object")

        command = data.get('command') or ''
        if not isinstance(command, str):
            raise ValueError(f"Hook {name}: 'command' must be a string")
        if not command.strip():
            raise ValueError(f"Hook {name}: 'command' cannot be empty")

        timeout = data.get('timeout', 3600)
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError(f"Hook {name}: 'timeout' must be a positive number of seconds")

        working_dir = data.get('working_dir')
        if working_dir is not None and not isinstance(working_dir, str):
            raise ValueError(f"Hook {name}: 'working_dir' must be a string")

        hooks[name] = HookConfig(
            name=name,
            command=command,
            timeout=timeout,
            working_dir=working_dir
        )
    return hooks


def hook_environment(hook: str, args: Optional[Dict[str, Any]], schedule: Optional[str]) -> Dict[str, str]:
    """Build the environment a hook command runs with."""
    args = args or {}
    env = dict(os.environ)
    env['CRON_HOOK'] = hook
    env['CRON_SCHEDULE'] = schedule or ''
    env['CRON_ARGS'] = json.dumps(args, sort_keys=True)
    for key, value in args.items():
        env_key = 'CRON_ARG_' + re.sub(r'[^A-Za-z0-9]', '_', str(key)).upper()
        env[env_key] = value if isinstance(value, str) else json.dumps(value)
    return env


class HookExecutor:
    """Executes hook commands with timeout and logging."""

    def execute_command(
        self,
        command: str,
        timeout: Optional[int] = 3600,
        working_dir: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        hook: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Execute a shell command.

        Args:
            command: Shell command to execute
            timeout: Timeout in seconds (default: 1 hour)
            working_dir: Working directory for command execution
            env: Environment for the command
            hook: Name of the hook (for logging)

        Returns:
            Dict with stdout, stderr, returncode

        Raises:
            HookExecutionError: If command fails (non-zero exit code)
        """
        log_prefix = f"[{hook}] " if hook else ""
        logger.info(f"{log_prefix}Executing command: {command}")

        try:
            result = subprocess.run(
                command,
                shell=True,
                capture_output=True,
                text=True,
                timeout=timeout,
                cwd=working_dir,
                env=env
            )
        except subprocess.TimeoutExpired as e:
            logger.error(f"{log_prefix}Command timed out after {timeout}s: {command}")
            raise HookExecutionError(f"Command timed out after {timeout}s") from e
        except OSError as e:
            logger.error(f"{log_prefix}Command execution failed: {e}")
            raise HookExecutionError(f"Command execution failed: {e}") from e

        for line in result.stdout.splitlines():
            logger.info(f"{log_prefix}{line}")
        for line in result.stderr.splitlines():
            logger.warning(f"{log_prefix}{line}")

        if result.returncode != 0:
            raise HookExecutionError(
                f"Command failed with exit code {result.returncode}: {result.stderr.strip()}"
            )

        return {
            'stdout': result.stdout,
            'stderr': result.stderr,
            'returncode': result.returncode
        }

    def run_hook(
        self,
        hook: str,
        args: Optional[Dict[str, Any]] = None,
        schedule: Optional[str] = None,
        config: Optional[Config] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Run the command registered for a hook.

        Returns:
            The command result, or None when no command is registered

        Raises:
            HookExecutionError: If the command fails
        """
        config = config or get_config()
        hook_config = load_hooks(config).get(hook)

        if hook_config is None:
            logger.warning(f"[{hook}] No command registered for hook, nothing to run")
            return None

        return self.execute_command(
            hook_config.command,
            timeout=hook_config.timeout,
            working_dir=hook_config.working_dir,
            env=hook_environment(hook, args, schedule),
            hook=hook
        )


# Module-level function for APScheduler serialization
def execute_hook(
    hook: str,
    args: Optional[Dict[str, Any]] = None,
    schedule: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    """
    Fire a hook. This is a module-level function so APScheduler can store
    a reference to it in the persistent job store.

    Args:
        hook: Hook name
        args: Event arguments
        schedule: Recurrence schedule name, None for one-off events

    Returns:
        Command result, or None when the hook has no command
    """
    return HookExecutor().run_hook(hook, args=args, schedule=schedule)
