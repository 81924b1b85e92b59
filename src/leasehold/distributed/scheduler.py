"""Periodic task scheduler.

A single scheduler instance drives many repeating tasks, each on its own
asyncio task, so a slow or failing task never delays another. The scheduler
is constructed explicitly and passed to whoever needs it; it has its own
start/stop lifecycle.

Example:
    async with PeriodicScheduler() as scheduler:
        token = scheduler.schedule(refresh, interval=10)
        ...
        scheduler.cancel(token)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from types import TracebackType

logger = logging.getLogger(__name__)

PeriodicTask = Callable[[], Awaitable[None]]


class ScheduledTask:
    """Cancellation token for a repeating task.

    Cancelling interrupts the wait between runs. A run already in progress is
    allowed to finish, so at most one run completes after ``cancel()``.
    """

    def __init__(self, func: PeriodicTask, interval: float, name: str) -> None:
        self.func = func
        self.interval = interval
        self.name = name
        self.runs = 0
        self._cancelled = False
        self._in_flight = False
        self._task: asyncio.Task[None] | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def in_flight(self) -> bool:
        """True while a run is executing."""
        return self._in_flight

    def cancel(self) -> None:
        """Stop further runs. Idempotent."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._task is not None and not self._in_flight:
            self._task.cancel()

    async def wait(self) -> None:
        """Wait for the underlying asyncio task to finish."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def _run(self) -> None:
        while not self._cancelled:
            await asyncio.sleep(self.interval)
            if self._cancelled:
                break

            self._in_flight = True
            try:
                await self.func()
            except Exception as e:
                logger.error(f"Scheduled task '{self.name}' failed: {e}", exc_info=True)
            finally:
                self._in_flight = False
                self.runs += 1

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"<ScheduledTask(name={self.name!r}, interval={self.interval}, {state})>"


class PeriodicScheduler:
    """Runs repeating coroutines at fixed intervals."""

    def __init__(self, name: str = "leasehold-scheduler") -> None:
        self.name = name
        self._tasks: set[ScheduledTask] = set()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def active_count(self) -> int:
        """Number of scheduled tasks that have not been cancelled."""
        return sum(1 for task in self._tasks if not task.cancelled)

    async def start(self) -> None:
        """Start accepting tasks."""
        if self._running:
            return
        self._running = True
        logger.info(f"Started scheduler '{self.name}'")

    async def stop(self) -> None:
        """Cancel every task and wait for in-flight runs to finish."""
        self._running = False
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        for task in tasks:
            await task.wait()
        self._tasks.clear()
        logger.info(f"Stopped scheduler '{self.name}'")

    def schedule(
        self,
        func: PeriodicTask,
        interval: float,
        name: str | None = None,
    ) -> ScheduledTask:
        """Run ``func`` every ``interval`` seconds, first run one interval from now.

        Returns:
            ScheduledTask token accepted by ``cancel``

        Raises:
            RuntimeError: If the scheduler is not running
            ValueError: If interval is not positive
        """
        if not self._running:
            raise RuntimeError(f"Scheduler '{self.name}' is not running")
        if interval <= 0:
            raise ValueError(f"Interval must be positive, got {interval}")

        scheduled = ScheduledTask(func, interval, name or getattr(func, "__name__", "task"))
        scheduled._task = asyncio.create_task(scheduled._run(), name=scheduled.name)
        scheduled._task.add_done_callback(lambda _: self._tasks.discard(scheduled))
        self._tasks.add(scheduled)
        logger.debug(f"Scheduled '{scheduled.name}' every {interval}s")
        return scheduled

    def cancel(self, token: ScheduledTask) -> None:
        """Stop a scheduled task. Unknown or already cancelled tokens are ignored."""
        token.cancel()

    async def __aenter__(self) -> PeriodicScheduler:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.stop()
