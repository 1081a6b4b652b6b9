"""
Exceptions raised by cronctl.

Library code raises these; the CLI reports them and exits non-zero.
"""


class CronError(Exception):
    """Base class for cronctl errors."""
    pass


class InvalidDatetimeError(CronError):
    """Raised when a --next-run value cannot be resolved to a timestamp."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"'{value}' is not a valid datetime.")


class InvalidScheduleError(CronError):
    """Raised for an unknown or malformed recurrence schedule."""
    pass


class NoEventsError(CronError):
    """Raised when the job store holds no cron events."""

    def __init__(self):
        super().__init__("You currently have no scheduled cron events.")


class HookExecutionError(CronError):
    """Raised when a hook's command fails."""
    pass


class DispatcherError(CronError):
    """Raised when the cron dispatcher cannot be reached."""
    pass
