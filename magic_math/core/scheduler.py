"""Periodic background jobs run on the event loop."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from magic_math.core.logging import get_logger

logger = get_logger(__name__)


class PeriodicTask:
    """Run an async callable every ``interval_s`` seconds until stopped.

    Failures are logged and the loop carries on; the job never runs inside
    a request, so a slow iteration cannot hold up request handling.
    """

    def __init__(self, name: str, interval_s: float, job: Callable[[], Awaitable[object]]):
        self.name = name
        self.interval_s = interval_s
        self._job = job
        self._task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop(), name=self.name)
        logger.info(f"{self.name} started", data={"interval_s": self.interval_s})

    async def stop(self) -> None:
        if not self._task:
            return
        self._stop_event.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(f"{self.name} stopped")

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_s)
            except asyncio.TimeoutError:
                pass
            else:
                break
            try:
                await self._job()
            except Exception as exc:
                logger.error(f"{self.name} iteration failed", data={"error": str(exc)})
