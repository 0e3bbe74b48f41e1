"""APScheduler-based checkpoint timer."""

from __future__ import annotations

from typing import Awaitable, Callable

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

log = structlog.get_logger()

JOB_ID = "checkpoint"


def create_scheduler() -> AsyncIOScheduler:
    """Create the scheduler instance shared by the runtime."""
    return AsyncIOScheduler()


class CheckpointTimer:
    """Owns the single interval job that checkpoints the record store.

    Starting the timer replaces any existing job, so at most one runs.
    """

    def __init__(self, scheduler: AsyncIOScheduler, interval_seconds: float) -> None:
        self._scheduler = scheduler
        self._interval = interval_seconds

    @property
    def running(self) -> bool:
        return self._scheduler.get_job(JOB_ID) is not None

    def start(self, callback: Callable[[], Awaitable[None]]) -> None:
        self.stop()
        self._scheduler.add_job(
            callback,
            "interval",
            seconds=self._interval,
            id=JOB_ID,
            name="Checkpoint record store",
            max_instances=1,
            coalesce=True,
        )
        log.debug("checkpoint_timer_started", interval_seconds=self._interval)

    def stop(self) -> None:
        if self._scheduler.get_job(JOB_ID) is None:
            return
        self._scheduler.remove_job(JOB_ID)
        log.debug("checkpoint_timer_stopped")
