"""Time-of-day trigger for the scheduler passes."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Callable

from loan_pact.clock import Clock
from loan_pact.config import SchedulerConfig

logger = logging.getLogger(__name__)


@dataclass
class DailyJob:
    """Run ``action`` once a day at ``at``."""

    name: str
    at: time
    action: Callable[[], object]
    last_run: datetime | None = None

    def latest_due(self, now: datetime) -> datetime:
        """Most recent scheduled instant at or before ``now``."""
        candidate = datetime.combine(now.date(), self.at)
        if candidate > now:
            candidate -= timedelta(days=1)
        return candidate

    def is_due(self, now: datetime) -> bool:
        return self.last_run is None or self.last_run < self.latest_due(now)


@dataclass
class WeeklyJob(DailyJob):
    """Run ``action`` once a week on ``weekday`` (Monday is 0) at ``at``."""

    weekday: int = 6

    def latest_due(self, now: datetime) -> datetime:
        days_back = (now.weekday() - self.weekday) % 7
        candidate = datetime.combine(now.date() - timedelta(days=days_back), self.at)
        if candidate > now:
            candidate -= timedelta(days=7)
        return candidate


class SchedulerRunner:
    """Poll a set of jobs and run the ones whose time has come.

    Jobs run one after another on the calling thread, so passes never
    overlap. A job that raises is logged and marked as run; it is retried
    at its next scheduled instant.
    """

    def __init__(
        self,
        jobs: list[DailyJob],
        clock: Clock,
        poll_seconds: float = 30.0,
        catch_up: bool = False,
    ) -> None:
        """Initialize the runner.

        Parameters
        ----------
        jobs : list[DailyJob]
            Jobs in the order they should run when due together.
        clock : Clock
            Time source.
        poll_seconds : float
            Sleep between polls in ``run_forever``.
        catch_up : bool
            When False, jobs whose instant already passed before start-up
            wait for their next one.
        """
        self.jobs = jobs
        self.clock = clock
        self.poll_seconds = poll_seconds
        if not catch_up:
            now = clock.now()
            for job in jobs:
                if job.last_run is None:
                    job.last_run = job.latest_due(now)

    @classmethod
    def from_config(cls, scheduler, config: SchedulerConfig, clock: Clock, catch_up: bool = False):
        """Wire an ``EscalationScheduler`` to the configured cadence."""
        jobs = [
            DailyJob("upcoming_due", config.upcoming_at, scheduler.run_upcoming_due_pass),
            DailyJob("overdue", config.overdue_at, scheduler.run_overdue_pass),
            WeeklyJob(
                "summary", config.summary_at, scheduler.run_summary_pass,
                weekday=config.summary_weekday,
            ),
        ]
        return cls(jobs, clock, poll_seconds=config.poll_seconds, catch_up=catch_up)

    def run_pending(self, now: datetime | None = None) -> list[str]:
        """Run every due job once; return the names of the jobs that ran."""
        now = now or self.clock.now()
        ran = []
        for job in self.jobs:
            if not job.is_due(now):
                continue
            logger.info("Running job %s", job.name)
            try:
                job.action()
            except Exception:
                logger.exception("Job %s failed", job.name)
            job.last_run = now
            ran.append(job.name)
        return ran

    def run_forever(self, stop_event: threading.Event | None = None) -> None:
        """Poll until ``stop_event`` is set (or forever)."""
        stop_event = stop_event or threading.Event()
        logger.info(
            "Scheduler started with %d jobs, polling every %.0fs", len(self.jobs), self.poll_seconds
        )
        while not stop_event.is_set():
            self.run_pending()
            stop_event.wait(self.poll_seconds)
        logger.info("Scheduler stopped")
