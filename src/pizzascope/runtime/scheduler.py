"""Fixed-period background timer with overlap protection."""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Runs an async callback every ``interval`` seconds on the running loop.

    Each firing launches the callback as its own task and does not wait for
    it. A firing that finds the previous run still in flight is skipped;
    skipped firings are not queued. Exceptions from a run are logged and
    never stop the timer.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[[], Awaitable[Any]],
    ) -> None:
        self.name = name
        self.interval = interval
        self.callback = callback
        self._loop_task: asyncio.Task[None] | None = None
        self._inflight: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start(self) -> None:
        """Start firing on the running event loop. Idempotent."""
        if self.running:
            return
        self._loop_task = asyncio.create_task(self._run(), name=f"{self.name}-timer")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.fire()

    def fire(self) -> asyncio.Task[None] | None:
        """Launch one run now unless the previous one is still in flight."""
        if self._inflight is not None and not self._inflight.done():
            logger.debug("%s still running, skipping this tick", self.name)
            return None
        self._inflight = asyncio.create_task(self._guarded(), name=self.name)
        return self._inflight

    async def _guarded(self) -> None:
        try:
            await self.callback()
        except Exception:
            logger.exception("%s run failed", self.name)

    async def stop(self) -> None:
        """Stop firing and wait for the in-flight run to finish."""
        if self._loop_task is not None:
            self._loop_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._loop_task
            self._loop_task = None
        if self._inflight is not None:
            await self._inflight
            self._inflight = None
