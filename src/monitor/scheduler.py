"""APScheduler integration for the integration monitor's periodic jobs.

The monitor talks to a small ``JobScheduler`` protocol so tests can swap in a
virtual scheduler and drive jobs by advancing a fake clock.
"""

import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]
from apscheduler.triggers.interval import IntervalTrigger  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

JobFunc = Callable[[], Awaitable[None]]


class JobScheduler(Protocol):
    def add_interval_job(self, func: JobFunc, *, seconds: float, job_id: str, name: str) -> None: ...

    def start(self) -> None: ...

    def shutdown(self) -> None: ...


class APSchedulerJobScheduler:
    """``JobScheduler`` backed by an ``AsyncIOScheduler`` on the running event loop."""

    def __init__(self) -> None:
        self._scheduler: AsyncIOScheduler | None = None

    def add_interval_job(self, func: JobFunc, *, seconds: float, job_id: str, name: str) -> None:
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            func,
            trigger=IntervalTrigger(seconds=seconds),
            id=job_id,
            name=name,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info("Scheduled %s every %ss", name, seconds)

    def start(self) -> None:
        if self._scheduler is None:
            logger.info("No monitor jobs registered; scheduler not started")
            return
        self._scheduler.start()
        logger.info("Monitor scheduler started")

    def shutdown(self) -> None:
        """Gracefully shut down the scheduler if it is running."""
        if self._scheduler is not None:
            with contextlib.suppress(Exception):
                self._scheduler.shutdown(wait=False)
            logger.info("Monitor scheduler stopped")
            self._scheduler = None
