"""Interval scheduling of polling cycles."""

import logging
import signal
from datetime import datetime
from typing import Callable, Optional

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

JOB_ID = "feed-check"
# Runs longer than the interval may overlap; the tracker is lock-protected.
# Matches the executor pool so every overlapping run gets a worker thread.
MAX_OVERLAPPING_RUNS = 10


class MonitorScheduler:
    """
    Runs a job immediately and then every ``interval_minutes``.

    Runs are spaced on wall-clock time and do not wait for the previous run
    to finish.
    """

    def __init__(self, job: Callable[[], object], interval_minutes: int, scheduler: Optional[BlockingScheduler] = None):
        if interval_minutes < 1:
            raise ValueError("interval_minutes must be at least 1")
        self.job = job
        self.interval_minutes = interval_minutes
        if scheduler is None:
            scheduler = BlockingScheduler(executors={"default": ThreadPoolExecutor(MAX_OVERLAPPING_RUNS)})
        self.scheduler = scheduler

    def schedule(self) -> None:
        self.scheduler.add_job(
            self.job,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=JOB_ID,
            next_run_time=datetime.now(),
            max_instances=MAX_OVERLAPPING_RUNS,
            coalesce=False,
            misfire_grace_time=60,
        )
        logger.info(f"Scheduled feed check every {self.interval_minutes} minute(s)")

    def stop(self, signum=None, frame=None) -> None:
        if signum is not None:
            logger.info(f"Received signal {signum}, shutting down gracefully...")
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    def install_signal_handlers(self) -> None:
        signal.signal(signal.SIGINT, self.stop)
        signal.signal(signal.SIGTERM, self.stop)

    def start(self) -> None:
        """Schedule the job and block until stopped."""
        self.schedule()
        self.install_signal_handlers()
        logger.info("Press Ctrl+C to stop")
        self.scheduler.start()
