"""Cron scheduling for the nightly and periodic jobs.

Wraps APScheduler's ``AsyncIOScheduler``. Jobs are zero-argument coroutine
functions; each is registered with a crontab expression evaluated in the
configured timezone.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger(__name__)

ScheduledJob = Callable[[], Awaitable[Any]]


class JobScheduler:
    """Registers cron jobs and owns the scheduler lifecycle.

    Usage::

        scheduler = JobScheduler("Europe/Berlin")
        scheduler.add_cron_job("cognitive_mirror", "0 6 * * *", pipeline.run_cognitive_mirror)
        scheduler.start()   # inside a running event loop
    """

    def __init__(self, timezone: str = "UTC") -> None:
        self._tz = ZoneInfo(timezone)
        self._scheduler = AsyncIOScheduler(timezone=self._tz)

    @property
    def timezone(self) -> ZoneInfo:
        return self._tz

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def add_cron_job(self, job_id: str, crontab: str, func: ScheduledJob) -> None:
        """Schedule ``func`` on a crontab expression, replacing any job with the same id.

        Raises:
            ValueError: If ``crontab`` is not a valid 5-field expression.
        """
        trigger = CronTrigger.from_crontab(crontab, timezone=self._tz)
        self._scheduler.add_job(
            func,
            trigger,
            id=job_id,
            name=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info("Scheduled job %s (%s %s)", job_id, crontab, self._tz.key)

    def job_ids(self) -> list[str]:
        return sorted(job.id for job in self._scheduler.get_jobs())

    def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Scheduler started with %d jobs", len(self._scheduler.get_jobs()))

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
