"""Periodic job — drop expired cache entries nobody reads again."""

from __future__ import annotations

import asyncio
import logging

from app.core.cache import TTLCache

logger = logging.getLogger(__name__)


class CacheSweeper:
    """Runs ``cache.cleanup()`` every ``interval_seconds`` on the event loop.

    Owned by the application lifespan: started on startup, stopped on
    shutdown. Tests start and stop it directly.
    """

    def __init__(self, cache: TTLCache, interval_seconds: float = 300.0) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.cache = cache
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stopping = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="cache-sweeper")
        logger.info("Cache sweeper started (every %.0fs)", self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stopping.set()
        task, self._task = self._task, None
        await task
        logger.info("Cache sweeper stopped")

    def sweep(self) -> int:
        removed = self.cache.cleanup()
        if removed:
            logger.info("Cache sweep removed %d expired entries", removed)
        return removed

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
            except TimeoutError:
                self.sweep()
