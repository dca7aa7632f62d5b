"""Wall-clock aligned refresh scheduling on the asyncio event loop.

A :class:`RefreshScheduler` runs an optional startup job once, then a tick
job at every ``interval_minutes`` boundary of the local clock (``:00``,
``:10``, ``:20`` ... for the default interval).  The delay is recomputed from
the clock before every wait, so a slow or missed run realigns to the next
true boundary instead of drifting.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MINUTES = 10
MINUTES_PER_DAY = 24 * 60

Job = Callable[[], Awaitable[Any]]


def next_boundary(now: datetime, interval_minutes: int = DEFAULT_INTERVAL_MINUTES) -> datetime:
    """Return the first interval boundary strictly after ``now``.

    Boundaries are counted from local midnight, so for a 10-minute interval
    they fall where ``minute % 10 == 0`` and seconds are zero.
    """
    if not 1 <= interval_minutes <= MINUTES_PER_DAY:
        raise ValueError(f"interval_minutes must be in [1, {MINUTES_PER_DAY}], got {interval_minutes}")

    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    minutes_today = now.hour * 60 + now.minute
    floored = minutes_today - minutes_today % interval_minutes
    return midnight + timedelta(minutes=floored + interval_minutes)


def _local_now() -> datetime:
    return datetime.now().astimezone()


class RefreshScheduler:
    """Cancellable periodic runner with at most one pending wait.

    Parameters
    ----------
    tick:
        Coroutine function run at every boundary.
    startup:
        Optional coroutine function run once, immediately, when the task
        starts.
    interval_minutes:
        Boundary spacing in minutes.
    clock:
        Returns the current aware local time.  Injected in tests.
    sleep:
        Awaitable sleep.  Injected in tests.
    """

    def __init__(
        self,
        tick: Job,
        *,
        startup: Job | None = None,
        interval_minutes: int = DEFAULT_INTERVAL_MINUTES,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        if not 1 <= interval_minutes <= MINUTES_PER_DAY:
            raise ValueError(f"interval_minutes must be in [1, {MINUTES_PER_DAY}]")
        self._tick = tick
        self._startup = startup
        self._interval_minutes = interval_minutes
        self._clock = clock or _local_now
        self._sleep = sleep or asyncio.sleep
        self._task: asyncio.Task[None] | None = None
        self._stopped = True
        self._sleeping = False
        self._last_boundary: datetime | None = None
        self.next_run_at: datetime | None = None

    @property
    def interval_minutes(self) -> int:
        return self._interval_minutes

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the scheduling task.  No-op if it is already running."""
        task = self._task
        if task is not None and not task.done() and not task.cancelling():
            # A task stopped mid-run has not exited yet and simply carries on
            self._stopped = False
            logger.debug("Refresh scheduler already running")
            return
        self._stopped = False
        self._last_boundary = None
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="weekboard-refresh-scheduler"
        )
        logger.info("Refresh scheduler started (every %d min)", self._interval_minutes)

    def stop(self) -> None:
        """Prevent further runs and cancel the pending wait, if any.

        A run already in progress is left to finish; the task then exits.
        """
        self._stopped = True
        self.next_run_at = None
        task = self._task
        if task is None or task.done():
            return
        if self._sleeping:
            task.cancel()
        logger.info("Refresh scheduler stopped")

    async def wait_closed(self) -> None:
        """Wait for the scheduling task to finish after :meth:`stop`."""
        task = self._task
        if task is None or task is asyncio.current_task():
            return
        with contextlib.suppress(asyncio.CancelledError):
            await task

    def _next_run(self) -> datetime:
        reference = self._clock()
        # Never serve the same boundary twice, even if the sleep woke early
        if self._last_boundary is not None and reference < self._last_boundary:
            reference = self._last_boundary
        return next_boundary(reference, self._interval_minutes)

    async def _invoke(self, job: Job, label: str) -> None:
        try:
            await job()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("%s refresh run failed", label.capitalize(), exc_info=True)

    async def _run(self) -> None:
        if self._startup is not None:
            await self._invoke(self._startup, "startup")

        while not self._stopped:
            target = self._next_run()
            self.next_run_at = target
            delay = max(0.0, (target - self._clock()).total_seconds())
            logger.debug("Next refresh at %s (in %.1fs)", target.isoformat(), delay)
            self._sleeping = True
            try:
                await self._sleep(delay)
            finally:
                self._sleeping = False
            if self._stopped:
                break
            self._last_boundary = target
            await self._invoke(self._tick, "scheduled")
