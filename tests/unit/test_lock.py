"""Unit tests for the FIFO session lock."""

from __future__ import annotations

import asyncio

import pytest

from coinbase_glue.exceptions import LockInvariantError
from coinbase_glue.session.lock import SessionLock


class _Resource:
    """Tracks how many operations overlap."""

    def __init__(self) -> None:
        self.active = 0
        self.max_active = 0
        self.order: list[int] = []


def _operation(index: int, delay: float, fail: bool = False):
    async def run(resource: _Resource) -> int:
        resource.active += 1
        resource.max_active = max(resource.max_active, resource.active)
        try:
            await asyncio.sleep(delay)
            resource.order.append(index)
            if fail:
                raise RuntimeError(f"op {index} failed")
            return index
        finally:
            resource.active -= 1

    return run


class TestSessionLock:
    """Mutual exclusion and ordering."""

    @pytest.mark.anyio
    async def test_returns_operation_result(self) -> None:
        """run_exclusive returns what the operation returns."""
        lock = SessionLock(_Resource())
        assert await lock.run_exclusive(_operation(7, 0)) == 7
        assert not lock.locked

    @pytest.mark.anyio
    async def test_operations_never_overlap(self) -> None:
        """At most one operation runs at a time, whatever their latency."""
        resource = _Resource()
        lock = SessionLock(resource)
        delays = [0.02, 0.0, 0.01, 0.005, 0.0, 0.015]

        await asyncio.gather(*(lock.run_exclusive(_operation(i, d)) for i, d in enumerate(delays)))

        assert resource.max_active == 1

    @pytest.mark.anyio
    async def test_fifo_order(self) -> None:
        """Operations run in the order they were submitted."""
        resource = _Resource()
        lock = SessionLock(resource)
        delays = [0.01, 0.0, 0.02, 0.0, 0.005]

        results = await asyncio.gather(*(lock.run_exclusive(_operation(i, d)) for i, d in enumerate(delays)))

        assert resource.order == [0, 1, 2, 3, 4]
        assert results == [0, 1, 2, 3, 4]

    @pytest.mark.anyio
    async def test_failure_propagates_and_lock_moves_on(self) -> None:
        """A failing operation raises in its caller and the next waiter still runs."""
        resource = _Resource()
        lock = SessionLock(resource)

        results = await asyncio.gather(
            lock.run_exclusive(_operation(0, 0.01, fail=True)),
            lock.run_exclusive(_operation(1, 0, fail=True)),
            lock.run_exclusive(_operation(2, 0)),
            return_exceptions=True,
        )

        assert isinstance(results[0], RuntimeError)
        assert isinstance(results[1], RuntimeError)
        assert results[2] == 2
        assert not lock.locked
        assert lock.pending == 0

    @pytest.mark.anyio
    async def test_lock_is_free_after_failure(self) -> None:
        """A later operation acquires the lock immediately after a failure."""
        lock = SessionLock(_Resource())
        with pytest.raises(RuntimeError):
            await lock.run_exclusive(_operation(0, 0, fail=True))
        assert await asyncio.wait_for(lock.run_exclusive(_operation(1, 0)), timeout=1) == 1

    @pytest.mark.anyio
    async def test_waiters_are_counted(self) -> None:
        """Queued operations show up in ``pending`` until they run."""
        lock = SessionLock(_Resource())
        gate = asyncio.Event()

        async def hold(resource: _Resource) -> None:
            await gate.wait()

        first = asyncio.ensure_future(lock.run_exclusive(hold))
        await asyncio.sleep(0)
        second = asyncio.ensure_future(lock.run_exclusive(_operation(1, 0)))
        await asyncio.sleep(0)

        assert lock.locked
        assert lock.pending == 1

        gate.set()
        await asyncio.gather(first, second)
        assert lock.pending == 0
        assert not lock.locked

    @pytest.mark.anyio
    async def test_cancelled_waiter_is_skipped(self) -> None:
        """A waiter cancelled before its turn never runs; later waiters still do."""
        resource = _Resource()
        lock = SessionLock(resource)
        gate = asyncio.Event()

        async def hold(resource: _Resource) -> None:
            await gate.wait()

        first = asyncio.ensure_future(lock.run_exclusive(hold))
        await asyncio.sleep(0)
        doomed = asyncio.ensure_future(lock.run_exclusive(_operation(1, 0)))
        survivor = asyncio.ensure_future(lock.run_exclusive(_operation(2, 0)))
        await asyncio.sleep(0)

        doomed.cancel()
        gate.set()
        await first
        assert await survivor == 2
        assert resource.order == [2]
        assert not lock.locked

    @pytest.mark.anyio
    async def test_unsafe_returns_resource(self) -> None:
        """unsafe() hands out the resource without taking the lock."""
        resource = _Resource()
        lock = SessionLock(resource)
        assert lock.unsafe() is resource
        assert not lock.locked

    def test_release_without_holder_raises(self) -> None:
        """Releasing an idle lock violates its invariant."""
        lock = SessionLock(_Resource())
        with pytest.raises(LockInvariantError):
            lock._release()
