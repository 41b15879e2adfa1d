"""
Cron scheduler for the statistics collection job.

CollectionScheduler runs a job coroutine (run_scheduled_collection by
default) in a background asyncio task that sleeps until the next fire time
of COLLECTION_CRON (default "0 1 * * *", 01:00 server local time). Fire
times follow the wall clock, so restarting the process does not shift or
skip the daily run.

COLLECTION_INTERVAL_SECONDS is the explicit alternative: when it is set the
job runs once on start and then every interval.

A run that raises or exceeds COLLECTION_RUN_TIMEOUT_SECONDS is logged and
abandoned; the next fire time simply runs again, which is safe because every
write of the pipeline is idempotent.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, Optional

from croniter import croniter

from testit_reports.core.config import Settings, get_settings
from testit_reports.jobs.statistics_collection import run_scheduled_collection


logger = logging.getLogger(__name__)

JobFn = Callable[[], Awaitable[Dict[str, Any]]]


class CollectionScheduler:
    """Background task that triggers statistics collection on a cron schedule."""

    def __init__(
        self,
        cron: Optional[str] = None,
        *,
        interval_seconds: Optional[float] = None,
        run_timeout_seconds: Optional[float] = None,
        job: Optional[JobFn] = None,
    ):
        if (cron is None) == (interval_seconds is None):
            raise ValueError("exactly one of cron or interval_seconds is required")
        if cron is not None and not croniter.is_valid(cron):
            raise ValueError(f"invalid cron expression: {cron!r}")
        if interval_seconds is not None and interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self.cron = cron
        self.interval_seconds = interval_seconds
        self.run_timeout_seconds = run_timeout_seconds
        self.job: JobFn = job or run_scheduled_collection
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> 'CollectionScheduler':
        """Interval mode when COLLECTION_INTERVAL_SECONDS is set, cron otherwise."""
        settings = settings or get_settings()
        if settings.collection_interval_seconds:
            return cls(
                interval_seconds=settings.collection_interval_seconds,
                run_timeout_seconds=settings.collection_run_timeout_seconds,
            )
        return cls(
            settings.collection_cron,
            run_timeout_seconds=settings.collection_run_timeout_seconds,
        )

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def schedule(self) -> str:
        if self.cron is not None:
            return f"cron '{self.cron}'"
        return f"every {self.interval_seconds}s"

    def next_fire_time(self, now: Optional[datetime] = None) -> datetime:
        """First fire time strictly after now (local time)."""
        now = now or datetime.now()
        if self.cron is not None:
            return croniter(self.cron, now).get_next(datetime)
        return now + timedelta(seconds=self.interval_seconds)

    def seconds_until_next_run(self, now: Optional[datetime] = None) -> float:
        now = now or datetime.now()
        return max((self.next_fire_time(now) - now).total_seconds(), 0.0)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name='statistics-collection-scheduler')
        logger.info(f"Statistics collection scheduler started ({self.schedule})")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Statistics collection scheduler stopped")

    async def run_once(self) -> Optional[Dict[str, Any]]:
        """Run the job once, containing errors and the optional timeout."""
        try:
            if self.run_timeout_seconds:
                return await asyncio.wait_for(self.job(), timeout=self.run_timeout_seconds)
            return await self.job()
        except asyncio.TimeoutError:
            logger.error(
                f"Scheduled statistics collection timed out after {self.run_timeout_seconds}s; "
                "it will be retried at the next fire time"
            )
            return None
        except Exception as e:
            logger.exception(f"Scheduled statistics collection failed: {e}")
            return None

    async def _loop(self) -> None:
        if self.cron is None:
            await self.run_once()

        while True:
            delay = self.seconds_until_next_run()
            logger.info(f"Next statistics collection in {delay:.0f}s")
            await asyncio.sleep(delay)
            await self.run_once()
