"""Fixed-interval timers backed by APScheduler's BackgroundScheduler."""

import logging
from typing import Callable, Protocol

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def every(self, seconds: float, func: Callable[[], None]) -> TimerHandle: ...


class _JobHandle:
    def __init__(self, job):
        self._job = job

    def cancel(self) -> None:
        try:
            self._job.remove()
        except JobLookupError:
            # Already removed (scheduler shut down or cancelled twice).
            pass


class IntervalScheduler:
    """Runs callables every N seconds on a background thread.

    Jobs never overlap with themselves: a tick that would start while the
    previous one is still running is skipped.
    """

    def __init__(self, scheduler: BackgroundScheduler | None = None):
        self._scheduler = scheduler or BackgroundScheduler()

    def start(self):
        if not self._scheduler.running:
            self._scheduler.start()
            logger.debug("Background scheduler started")

    def shutdown(self):
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.debug("Background scheduler stopped")

    def every(self, seconds: float, func: Callable[[], None]) -> TimerHandle:
        self.start()
        job = self._scheduler.add_job(
            func, "interval", seconds=seconds, max_instances=1, coalesce=True,
        )
        return _JobHandle(job)
