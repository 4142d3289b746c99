"""Window watcher: polls the session for windows the wallet opens.

The automation protocol has no "window opened" notification, so the watcher
lists window handles every ``poll_interval_ms`` and diffs against its own
previous listing. Listing happens without the session lock; classification
of the new handles is scheduled as a separate locked pass so discovery
keeps its cadence while the lock is busy.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from coinbase_glue.session.browser import Session
from coinbase_glue.session.lock import SessionLock

logger = logging.getLogger(__name__)


class WindowWatcher:
    """Background loop that discovers new window handles.

    Args:
        lock: The session lock. Only ``unsafe()`` is used, for listing.
        enqueue: Receives the new handles found in a cycle.
        classify: Coroutine function running one classification pass.
        poll_interval_ms: Delay between cycles.
    """

    def __init__(
        self,
        lock: SessionLock[Session],
        enqueue: Callable[[list[str]], object],
        classify: Callable[[], Awaitable[None]],
        poll_interval_ms: int = 500,
    ) -> None:
        self._lock = lock
        self._enqueue = enqueue
        self._classify = classify
        self._interval = poll_interval_ms / 1000
        self._running = False
        self._task: asyncio.Task | None = None
        self._passes: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start polling in a background task."""
        if self._task is not None:
            return
        self._running = True
        self._task = asyncio.ensure_future(self._watch())

    def stop(self) -> None:
        """Ask the loop to exit at the top of its next cycle."""
        self._running = False

    async def wait_closed(self) -> None:
        """Wait for the loop and any in-flight classification passes to finish."""
        if self._task is not None:
            await self._task
        if self._passes:
            await asyncio.gather(*self._passes, return_exceptions=True)

    async def _list_handles(self) -> list[str] | None:
        try:
            return await self._lock.unsafe().window_handles()
        except Exception as e:
            logger.warning("Listing windows failed: %s", e)
            return None

    async def _watch(self) -> None:
        # Windows open at start-up are the baseline, not discoveries.
        previous = await self._list_handles()
        while previous is None and self._running:
            await asyncio.sleep(self._interval)
            previous = await self._list_handles()

        while self._running:
            current = await self._list_handles()
            if current is not None:
                created = [h for h in current if h not in previous]
                previous = current

                if created:
                    logger.debug("Found windows %s", created)
                    self._enqueue(created)
                    self._schedule_pass()

            await asyncio.sleep(self._interval)

        logger.debug("Window watcher stopped")

    def _schedule_pass(self) -> None:
        task = asyncio.ensure_future(self._classify())
        self._passes.add(task)
        task.add_done_callback(self._pass_done)

    def _pass_done(self, task: asyncio.Task) -> None:
        self._passes.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Window classification failed", exc_info=exc)
