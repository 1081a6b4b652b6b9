"""
Cron dispatcher: the process side of cron events.

check_dispatcher() performs a test request against the configured HTTP
dispatch endpoint. DispatcherService runs an APScheduler blocking
scheduler over the event job store, firing hooks as they come due.
"""

import logging
import signal
import sys
import time
from datetime import timezone
from typing import Optional

import requests
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.events import (
    EVENT_JOB_EXECUTED,
    EVENT_JOB_ERROR,
    EVENT_JOB_MISSED
)

from config import Config, get_config
from cronctl.errors import DispatcherError
from cronctl.events import ensure_sqlite_dir

logger = logging.getLogger(__name__)


def check_dispatcher(config: Optional[Config] = None) -> bool:
    """
    Test that the cron dispatcher endpoint is reachable.

    Sends a blocking POST to the dispatcher URL with a doing_cron key,
    the same request a dispatch spawn would make. When alternate cron
    is enabled no request is made.

    Returns:
        True if the dispatcher responded

    Raises:
        DispatcherError: If no URL is configured, the request fails, or
            the endpoint answers with an error status
    """
    config = config or get_config()

    if config.alternate_cron:
        logger.debug("Alternate cron is enabled, skipping dispatcher request")
        return True

    if not config.dispatcher_url:
        raise DispatcherError(
            "No dispatcher URL configured (set CRONCTL_DISPATCHER_URL or 'dispatcher_url')"
        )

    doing_cron = '%.22f' % time.time()
    logger.debug(f"POST {config.dispatcher_url} (doing_cron={doing_cron})")

    try:
        response = requests.post(
            config.dispatcher_url,
            params={'doing_cron': doing_cron},
            timeout=config.dispatcher_timeout,
            verify=config.ssl_verify
        )
    except requests.RequestException as e:
        raise DispatcherError(str(e)) from e

    if response.status_code >= 400:
        raise DispatcherError(f"Unexpected HTTP response code: {response.status_code}")

    return True


class DispatcherService:
    """
    Fires stored cron events in the foreground.

    Uses APScheduler's BlockingScheduler with the same job store the
    event commands write to, so events scheduled from the CLI are picked
    up on start.
    """

    def __init__(self, config: Optional[Config] = None, max_workers: int = 5):
        """
        Initialize dispatcher service.

        Args:
            config: Configuration (default: global config)
            max_workers: Maximum number of concurrent hook executions
        """
        self.config = config or get_config()
        ensure_sqlite_dir(self.config.job_store_url)

        self.scheduler = BlockingScheduler(
            jobstores={'default': SQLAlchemyJobStore(url=self.config.job_store_url)},
            executors={'default': ThreadPoolExecutor(max_workers)},
            timezone=timezone.utc
        )

        self._setup_event_listeners()

        logger.info(f"Dispatcher initialized with job store: {self.config.job_store_url}")

    def _setup_event_listeners(self):
        """Setup APScheduler event listeners for logging."""

        def job_executed_listener(event):
            logger.info(f"Event '{event.job_id}' executed successfully")

        def job_error_listener(event):
            logger.error(f"Event '{event.job_id}' raised exception: {event.exception}")

        def job_missed_listener(event):
            logger.warning(f"Event '{event.job_id}' missed scheduled run time")

        self.scheduler.add_listener(job_executed_listener, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(job_error_listener, EVENT_JOB_ERROR)
        self.scheduler.add_listener(job_missed_listener, EVENT_JOB_MISSED)

    def _setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown."""

        def signal_handler(signum, frame):
            logger.info(f"Received signal {signum}, shutting down...")
            self.stop()
            sys.exit(0)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def start(self):
        """Start dispatching. Blocks until stopped."""
        self._setup_signal_handlers()
        logger.info("Starting cron dispatcher...")
        self.scheduler.start()

    def stop(self, wait: bool = True):
        """
        Stop the dispatcher.

        Args:
            wait: If True, wait for running hooks to complete
        """
        if self.scheduler.running:
            logger.info("Stopping cron dispatcher...")
            self.scheduler.shutdown(wait=wait)
            logger.info("Cron dispatcher stopped")
        else:
            logger.warning("Cron dispatcher is not running")
