from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from caseflow.application import SweepResult

logger = logging.getLogger(__name__)


class SLASweeper:
    """Runs the SLA sweep on a fixed interval in the background.

    ``sweep`` is looked up on every tick so a rebuilt engine is picked up
    without restarting the worker.
    """

    def __init__(self, sweep: Callable[[], Awaitable[SweepResult]], *, interval_seconds: float = 3600.0) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._sweep = sweep
        self._interval = interval_seconds
        self._lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> SweepResult:
        async with self._lock:
            return await self._sweep()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.run_once()
            except Exception:
                logger.exception("Scheduled SLA sweep failed")

    def start(self) -> None:
        if self.running:
            return
        logger.info("Starting SLA sweeper (every %.0f seconds)", self._interval)
        self._task = asyncio.create_task(self._loop(), name="sla-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("SLA sweeper stopped")
