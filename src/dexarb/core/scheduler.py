"""
Periodic task scheduling.

Each recurring job (per-chain price collection, detection, pool refresh)
runs in its own asyncio task. A busy flag allows at most one execution
in flight; late or overlapping ticks are counted rather than stacked.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any


logger = logging.getLogger(__name__)


TaskBody = Callable[[], Awaitable[Any]]


@dataclass
class TaskStats:
    """Execution statistics of a periodic task."""

    runs: int = 0
    failures: int = 0
    overruns: int = 0
    skipped: int = 0
    last_duration: float = 0.0
    max_duration: float = 0.0
    last_error: str | None = None

    @property
    def failure_rate(self) -> float:
        return self.failures / self.runs if self.runs > 0 else 0.0


class PeriodicTask:
    """
    Interval-driven task with an in-flight guard.

    Features:
    - At most one execution in flight (busy flag)
    - A tick arriving while busy is skipped and counted as an overrun
    - A body outlasting its interval is counted as an overrun; the next
      tick starts immediately without catch-up
    - Body exceptions are logged and counted; the loop keeps running
    """

    def __init__(
        self,
        name: str,
        body: TaskBody,
        interval: float,
        run_immediately: bool = True,
    ) -> None:
        """
        Initialize periodic task.

        Args:
            name: Task name used in logs.
            body: Coroutine function run every tick.
            interval: Seconds between tick starts.
            run_immediately: Run the first tick on start instead of
                after one interval.
        """
        if interval <= 0:
            raise ValueError("interval must be positive")

        self._name = name
        self._body = body
        self._interval = interval
        self._run_immediately = run_immediately
        self._busy = False
        self._task: asyncio.Task[None] | None = None
        self._stats = TaskStats()

    async def run_once(self) -> bool:
        """
        Execute the body once unless an execution is already in flight.

        Returns:
            True if the body ran (even if it failed), False if skipped.
        """
        if self._busy:
            self._stats.overruns += 1
            self._stats.skipped += 1
            logger.warning(f"Task {self._name} still running, tick skipped")
            return False

        self._busy = True
        started = time.monotonic()
        try:
            await self._body()
        except Exception as e:
            self._stats.failures += 1
            self._stats.last_error = str(e)
            logger.error(f"Task {self._name} failed: {e}")
        finally:
            self._busy = False
            duration = time.monotonic() - started
            self._stats.runs += 1
            self._stats.last_duration = duration
            self._stats.max_duration = max(self._stats.max_duration, duration)

        if duration > self._interval:
            self._stats.overruns += 1
            logger.warning(
                f"Task {self._name} took {duration:.2f}s, over its {self._interval:.2f}s interval"
            )

        return True

    async def _run(self) -> None:
        if not self._run_immediately:
            await asyncio.sleep(self._interval)

        while True:
            started = time.monotonic()
            await self.run_once()
            elapsed = time.monotonic() - started
            await asyncio.sleep(max(0.0, self._interval - elapsed))

    def start(self) -> None:
        """Start the background loop. No-op if already running."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name=self._name)
        logger.debug(f"Task {self._name} started (every {self._interval:.2f}s)")

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish. No-op if stopped."""
        task, self._task = self._task, None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug(f"Task {self._name} stopped after {self._stats.runs} runs")

    @property
    def name(self) -> str:
        return self._name

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_busy(self) -> bool:
        return self._busy

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def stats(self) -> TaskStats:
        return self._stats
