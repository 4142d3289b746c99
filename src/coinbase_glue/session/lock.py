"""FIFO mutual exclusion over a single shared resource.

Every operation against the automation session goes through
``SessionLock.run_exclusive``. At most one operation runs at a time; the
rest wait in arrival order. A failing operation still hands the lock to the
next waiter.

Usage::

    lock = SessionLock(session)
    url = await lock.run_exclusive(lambda s: s.current_url())
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Generic, TypeVar

from coinbase_glue.exceptions import LockInvariantError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

Operation = Callable[[T], Awaitable[R]]


class SessionLock(Generic[T]):
    """Single-resource exclusive-access scheduler with FIFO fairness.

    Args:
        resource: The object being protected. Operations receive it as
            their only argument.
    """

    def __init__(self, resource: T) -> None:
        self._resource = resource
        self._queue: deque[tuple[Operation, asyncio.Future]] = deque()
        self._locked = False
        self._tasks: set[asyncio.Task] = set()

    @property
    def locked(self) -> bool:
        """Whether an operation currently holds the lock."""
        return self._locked

    @property
    def pending(self) -> int:
        """Number of operations waiting for their turn."""
        return len(self._queue)

    def unsafe(self) -> T:
        """Return the resource without acquiring the lock."""
        return self._resource

    async def run_exclusive(self, operation: Operation) -> R:
        """Run *operation* with exclusive access to the resource.

        Starts immediately when the lock is idle; otherwise waits until every
        earlier caller has finished. The operation's result or exception is
        returned to (raised in) the caller.
        """
        if self._locked:
            logger.debug("Queuing (%d ahead)", len(self._queue))
            future: asyncio.Future = asyncio.get_running_loop().create_future()
            self._queue.append((operation, future))
            return await future

        logger.debug("Locking")
        self._locked = True
        try:
            return await operation(self._resource)
        finally:
            self._release()

    def _release(self) -> None:
        if not self._locked:
            raise LockInvariantError("release of a session lock that is not held")

        while self._queue:
            operation, future = self._queue.popleft()
            if future.cancelled():
                logger.debug("Skipping operation whose caller went away")
                continue
            logger.debug("Running queued operation (%d left)", len(self._queue))
            task = asyncio.ensure_future(self._run_queued(operation, future))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            return

        logger.debug("Unlocking")
        self._locked = False

    async def _run_queued(self, operation: Operation, future: asyncio.Future) -> None:
        try:
            try:
                result = await operation(self._resource)
            except Exception as exc:
                if not future.done():
                    future.set_exception(exc)
            else:
                if not future.done():
                    future.set_result(result)
        finally:
            if not future.done():
                future.cancel()
            self._release()
