"""Tests for AsyncBoundedBuffer: the asyncio twin of BoundedBuffer.

Requires: pip install pytest-asyncio
"""
from __future__ import annotations

import asyncio

import pytest

from permit_buffer.concurrency.async_buffer import AsyncBoundedBuffer, AsyncCountingPermit
from permit_buffer.concurrency.backpressure import Backpressure
from permit_buffer.domain.errors import (
    Cancelled,
    InvalidConfiguration,
    InvariantViolation,
    Shutdown,
)


async def _settle() -> None:
    """Let every runnable task reach its next await."""
    for _ in range(5):
        await asyncio.sleep(0)


def test_invalid_capacity():
    with pytest.raises(InvalidConfiguration):
        AsyncBoundedBuffer(0)


@pytest.mark.asyncio
async def test_single_slot_round_trip():
    buf = AsyncBoundedBuffer(1)
    await buf.produce("x")
    assert await buf.consume() == "x"
    assert len(buf) == 0
    assert buf.stats().consistent


@pytest.mark.asyncio
async def test_exactly_capacity_producers_admitted():
    """capacity=5, 8 producer tasks: 5 finish, 3 wait for a consume."""
    buf = AsyncBoundedBuffer(5)
    tasks = [asyncio.create_task(buf.produce(i)) for i in range(8)]
    await _settle()

    assert sum(t.done() for t in tasks) == 5
    assert buf.producers_waiting == 3

    for _ in range(3):
        await buf.consume()
    await asyncio.wait_for(asyncio.gather(*tasks), timeout=5.0)
    assert len(buf) == 5
    assert buf.stats().consistent


@pytest.mark.asyncio
async def test_waiting_producers_admitted_in_order():
    buf = AsyncBoundedBuffer(1)
    await buf.produce("first")
    tasks = [asyncio.create_task(buf.produce(n)) for n in range(3)]
    await _settle()

    seen = [await buf.consume()]
    for _ in range(3):
        await _settle()
        seen.append(await buf.consume())
    await asyncio.gather(*tasks)
    assert seen == ["first", 0, 1, 2]


@pytest.mark.asyncio
async def test_shutdown_fails_blocked_consumer():
    buf = AsyncBoundedBuffer(3)
    task = asyncio.create_task(buf.consume())
    await _settle()
    assert buf.consumers_waiting == 1

    buf.shutdown()
    buf.shutdown()
    with pytest.raises(Shutdown):
        await task
    with pytest.raises(Shutdown):
        await buf.produce("late")


@pytest.mark.asyncio
async def test_timeout_raises_cancelled():
    buf = AsyncBoundedBuffer(1)
    with pytest.raises(Cancelled):
        await buf.consume(timeout=0.05)
    assert buf.consumers_waiting == 0
    assert buf.stats().consistent


@pytest.mark.asyncio
async def test_fail_fast_backpressure():
    buf = AsyncBoundedBuffer(1, Backpressure.fail_fast())
    await buf.produce(1)
    with pytest.raises(Cancelled):
        await buf.produce(2)


@pytest.mark.asyncio
async def test_task_cancel_leaks_no_permit():
    """A cancelled consumer does not swallow the next item."""
    buf = AsyncBoundedBuffer(1)
    doomed = asyncio.create_task(buf.consume())
    await _settle()

    doomed.cancel()
    with pytest.raises(asyncio.CancelledError):
        await doomed
    assert buf.consumers_waiting == 0

    await buf.produce("kept")
    assert await asyncio.wait_for(buf.consume(), timeout=1.0) == "kept"


@pytest.mark.asyncio
async def test_cancel_after_grant_passes_permit_on():
    """Granted-then-cancelled waiter hands its permit to the next one."""
    permit = AsyncCountingPermit(0, 1, name="read")
    first = asyncio.create_task(permit.acquire())
    second = asyncio.create_task(permit.acquire())
    await _settle()

    permit.release()      # resolves first's future...
    first.cancel()        # ...but first is cancelled before it resumes
    with pytest.raises(asyncio.CancelledError):
        await first
    await asyncio.wait_for(second, timeout=1.0)
    assert permit.available == 0


@pytest.mark.asyncio
async def test_drain_after_shutdown():
    buf = AsyncBoundedBuffer(3)
    with pytest.raises(InvariantViolation):
        buf.drain()
    for item in "abc":
        await buf.produce(item)
    buf.shutdown()
    assert buf.drain() == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_many_tasks_conserve_items():
    buf = AsyncBoundedBuffer(3)
    total = 4 * 250
    received: list[int] = []

    async def producer(pid):
        for i in range(250):
            await buf.produce(pid * 250 + i)
            if i % 10 == 0:
                await asyncio.sleep(0)

    async def consumer(count):
        for _ in range(count):
            received.append(await buf.consume())

    await asyncio.wait_for(
        asyncio.gather(
            *(producer(p) for p in range(4)),
            *(consumer(total // 2) for _ in range(2)),
        ),
        timeout=10.0,
    )
    assert sorted(received) == list(range(total))
    assert buf.stats().consistent
