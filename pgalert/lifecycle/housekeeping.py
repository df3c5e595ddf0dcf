"""Scheduled cleanup of resolved alerts and expired silences."""

from __future__ import annotations

import asyncio

import structlog

from pgalert.lifecycle.manager import AlertManager

logger = structlog.get_logger(__name__)


class HousekeepingScheduler:
    """Background task that runs ``AlertManager.cleanup`` every *interval_secs*.

    Usage::

        housekeeping = HousekeepingScheduler(manager, interval_secs=86400)
        await housekeeping.start()
        # ...
        await housekeeping.stop()
    """

    def __init__(self, manager: AlertManager, interval_secs: float = 86400.0) -> None:
        self._manager = manager
        self._interval_secs = interval_secs
        self._task: asyncio.Task[None] | None = None
        self._running = False

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def run_once(self) -> tuple[int, int]:
        return await self._manager.cleanup()

    async def _loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._interval_secs)
            try:
                await self.run_once()
            except asyncio.CancelledError:
                return
            except Exception:
                logger.exception("housekeeping_loop_error")
