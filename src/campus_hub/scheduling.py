"""Fixed-interval background jobs.

A PeriodicTask fires on wall-clock multiples of its interval (a 120 second
task runs at :00, :02, :04 ... past the hour), like a ``*/2 * * * *`` cron
entry. The clock and the sleep function are injected so tests can run the
loop without waiting.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone

import structlog

from campus_hub.protocols import Clock, SystemClock

logger = structlog.get_logger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

JobFunction = Callable[[], object | Awaitable[object]]
SleepFunction = Callable[[float], Awaitable[None]]


def next_fire_time(now: datetime, interval: timedelta) -> datetime:
    """First multiple of ``interval`` since the epoch strictly after ``now``."""
    step = interval.total_seconds()
    elapsed = (now - _EPOCH).total_seconds()
    ticks = int(elapsed // step) + 1
    return _EPOCH + timedelta(seconds=ticks * step)


class PeriodicTask:
    """Runs a job repeatedly on an aligned interval until stopped.

    Job failures are logged and do not stop the schedule; the next tick runs
    as usual. The job's return value is only logged.

    Example:
        ```python
        task = PeriodicTask("notification-check", timedelta(minutes=2), services.notifications.check_and_notify)
        task.start()
        ...
        await task.stop()
        ```
    """

    def __init__(
        self,
        name: str,
        interval: timedelta,
        job: JobFunction,
        clock: Clock | None = None,
        sleep: SleepFunction = asyncio.sleep,
    ) -> None:
        if interval.total_seconds() <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self._interval = interval
        self._job = job
        self._clock = clock or SystemClock()
        self._sleep = sleep
        self._task: asyncio.Task | None = None
        self.runs = 0

    @property
    def interval(self) -> timedelta:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> bool:
        """Execute the job a single time.

        Returns:
            True if the job completed, False if it raised
        """
        self.runs += 1
        try:
            result = self._job()
            if inspect.isawaitable(result):
                result = await result
        except Exception:
            logger.exception("periodic_task_failed", task=self.name, run=self.runs)
            return False
        logger.debug("periodic_task_completed", task=self.name, run=self.runs, result=result)
        return True

    async def run(self, max_runs: int | None = None) -> None:
        """Sleep until each aligned fire time and run the job.

        Args:
            max_runs: Stop after this many runs. None runs until cancelled.
        """
        completed = 0
        while max_runs is None or completed < max_runs:
            now = self._clock.now()
            delay = (next_fire_time(now, self._interval) - now).total_seconds()
            await self._sleep(delay)
            await self.run_once()
            completed += 1

    def start(self) -> asyncio.Task:
        """Schedule ``run`` on the current event loop."""
        if self.is_running:
            raise RuntimeError(f"Periodic task {self.name} is already running")
        self._task = asyncio.create_task(self.run(), name=f"periodic:{self.name}")
        logger.info("periodic_task_started", task=self.name, interval_seconds=self._interval.total_seconds())
        return self._task

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("periodic_task_stopped", task=self.name, runs=self.runs)
