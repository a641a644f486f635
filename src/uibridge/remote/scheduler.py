"""Flag-guarded repeat-after-delay task."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class RepeatingTask:
    """Run an async callable, sleep *interval_sec*, repeat until stopped.

    The next run is only scheduled after the previous one finished, so runs
    never overlap. ``stop()`` lets an in-flight run finish; ``cancel()`` also
    interrupts it. Each ``start()`` gets its own stop event, and a restarted
    loop waits for the previous loop to wind down before its first run.

    Args:
        name: Label used in log messages and as the asyncio task name.
        interval_sec: Delay between the end of one run and the next.
        func: The coroutine function to run.
        run_immediately: Run once right away instead of after the first delay.
    """

    def __init__(
        self,
        name: str,
        interval_sec: float,
        func: Callable[[], Awaitable[object]],
        *,
        run_immediately: bool = True,
    ) -> None:
        self.name = name
        self.interval_sec = interval_sec
        self._func = func
        self._run_immediately = run_immediately
        self._stopped: asyncio.Event | None = None
        self._task: asyncio.Task[None] | None = None
        self.runs = 0
        self.failures = 0

    @property
    def is_running(self) -> bool:
        return self._stopped is not None and not self._stopped.is_set()

    def start(self) -> None:
        if self.is_running:
            return
        self._stopped = asyncio.Event()
        self._task = asyncio.create_task(self._loop(self._stopped, self._task), name=self.name)

    def stop(self) -> None:
        """Prevent further runs; an in-flight run is not interrupted."""
        if self._stopped is not None:
            self._stopped.set()

    async def cancel(self) -> None:
        """Stop and cancel the underlying task, waiting for it to unwind."""
        self.stop()
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _sleep(self, stopped: asyncio.Event) -> None:
        try:
            await asyncio.wait_for(stopped.wait(), self.interval_sec)
        except asyncio.TimeoutError:
            pass

    async def _loop(self, stopped: asyncio.Event, previous: asyncio.Task[None] | None) -> None:
        if previous is not None and not previous.done():
            await asyncio.wait([previous])
        if not self._run_immediately:
            await self._sleep(stopped)
        while not stopped.is_set():
            try:
                await self._func()
            except Exception as exc:
                self.failures += 1
                logger.warning("%s run failed: %s", self.name, exc)
            self.runs += 1
            if stopped.is_set():
                break
            await self._sleep(stopped)
