"""
Foreground scheduler for nightly backups.

Runs the nightly action once a day at ``Schedule.NightlyTime`` (local time)
using APScheduler, as an alternative to a cron entry. A failed run is
logged and the scheduler waits for the next day.
"""

from __future__ import annotations

import signal
import sys
from typing import Any

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from .config import Settings
from .dispatcher import Dispatcher
from .errors import TsmError
from .logger import get_logger

log = get_logger(__name__)

NIGHTLY_JOB_ID = "nightly_backup"


class NightlyScheduler:
    """Schedules ``Dispatcher.run_nightly`` on a daily cron trigger."""

    def __init__(self, settings: Settings, dispatcher: Dispatcher):
        self.settings = settings
        self.dispatcher = dispatcher
        self.scheduler = BlockingScheduler()

    def _handle_signal(self, signum: int, frame: Any) -> None:
        log.info("Received signal %s, shutting down...", signum)
        self.stop()
        sys.exit(0)

    def nightly_backup(self) -> None:
        try:
            summary = self.dispatcher.run_nightly()
            log.info(
                "Nightly run finished: created %s, expired %d archive(s)",
                summary.created, len(summary.expired_names),
            )
        except TsmError as e:
            log.exception("Nightly run failed: %s", e)

    def add_jobs(self) -> None:
        schedule = self.settings.schedule
        self.scheduler.add_job(
            self.nightly_backup,
            trigger=CronTrigger(hour=schedule.hour, minute=schedule.minute),
            id=NIGHTLY_JOB_ID,
            name="Nightly Backup",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        log.info("Scheduled nightly backup at %s", schedule.nightly_time)

    def start(self) -> None:
        signal.signal(signal.SIGTERM, self._handle_signal)
        signal.signal(signal.SIGINT, self._handle_signal)

        self.add_jobs()
        for job in self.scheduler.get_jobs():
            log.info("  - %s: %s", job.name, job.trigger)

        try:
            self.scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            self.stop()

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
            log.info("Scheduler stopped")
