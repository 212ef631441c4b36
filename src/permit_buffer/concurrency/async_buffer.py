"""Async bounded buffer: same protocol as BoundedBuffer, no threads.

Producers and consumers are coroutines on one event loop. Each permit
keeps a FIFO deque of futures; release() resolves the oldest one, which
hands the permit straight to that waiter.

No mutex is needed around the store: the insert/remove and the release
that follows run without an await in between, so no other coroutine
can observe the store half-updated.

Cancellation follows asyncio conventions. task.cancel() on a blocked
produce()/consume() propagates asyncio.CancelledError. If the permit
had already been handed over when the cancel landed, it is passed on
to the next waiter so nothing leaks. A timeout raises Cancelled.
"""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any

from permit_buffer.concurrency.backpressure import Backpressure
from permit_buffer.domain.errors import (
    Cancelled,
    InvalidConfiguration,
    InvariantViolation,
    Shutdown,
)
from permit_buffer.domain.types import BufferStats
from permit_buffer.store.bounded_store import BoundedStore

log = logging.getLogger(__name__)


class AsyncCountingPermit:
    """FIFO counting permit for coroutines."""

    def __init__(self, initial: int, limit: int, name: str = "permit") -> None:
        if initial < 0 or limit <= 0 or limit < initial:
            raise InvalidConfiguration(
                f"bad permit bounds: initial={initial}, limit={limit}"
            )
        self._name = name
        self._available = initial
        self._limit = limit
        self._waiters: deque[asyncio.Future[None]] = deque()
        self._closed = False

    @property
    def available(self) -> int:
        return self._available

    @property
    def waiting(self) -> int:
        return sum(1 for fut in self._waiters if not fut.done())

    @property
    def closed(self) -> bool:
        return self._closed

    async def acquire(self, timeout: float | None = None) -> None:
        if self._closed:
            raise Shutdown(f"{self._name} is closed")
        if self._available > 0 and not self._waiters:
            self._available -= 1
            return
        if timeout is not None and timeout <= 0:
            raise Cancelled(f"no {self._name} available")

        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        try:
            if timeout is None:
                await fut
            else:
                await asyncio.wait_for(fut, timeout)
        except TimeoutError:
            if self._granted(fut):
                return
            self._forget(fut)
            raise Cancelled(
                f"timed out after {timeout}s waiting for {self._name}"
            ) from None
        except asyncio.CancelledError:
            if self._granted(fut):
                self._release_now()
            else:
                self._forget(fut)
            raise

    def release(self) -> None:
        self._release_now()

    def take_all(self) -> int:
        taken, self._available = self._available, 0
        return taken

    def close(self) -> bool:
        if self._closed:
            return False
        self._closed = True
        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                fut.set_exception(Shutdown(f"{self._name} closed while waiting"))
        return True

    def _release_now(self) -> None:
        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                fut.set_result(None)
                return
        if self._available >= self._limit:
            raise InvariantViolation(
                f"{self._name} released past its limit of {self._limit}"
            )
        self._available += 1

    @staticmethod
    def _granted(fut: asyncio.Future[None]) -> bool:
        return fut.done() and not fut.cancelled() and fut.exception() is None

    def _forget(self, fut: asyncio.Future[None]) -> None:
        fut.cancel()
        if fut in self._waiters:
            self._waiters.remove(fut)


class AsyncBoundedBuffer:
    """Fixed-capacity buffer for asyncio producers and consumers.

    Args:
        capacity: Number of slots. Non-positive values raise InvalidConfiguration.
        backpressure: What to do when no permit is free (default: block).
    """

    def __init__(self, capacity: int, backpressure: Backpressure | None = None) -> None:
        self._store = BoundedStore(capacity)
        self._write = AsyncCountingPermit(capacity, capacity, name="write permit")
        self._read = AsyncCountingPermit(0, capacity, name="read permit")
        self._backpressure = backpressure or Backpressure.block()
        self._produced = 0
        self._consumed = 0

    @property
    def capacity(self) -> int:
        return self._store.capacity

    @property
    def closed(self) -> bool:
        return self._write.closed

    @property
    def producers_waiting(self) -> int:
        return self._write.waiting

    @property
    def consumers_waiting(self) -> int:
        return self._read.waiting

    async def produce(self, item: Any, timeout: float | None = None) -> None:
        """timeout=None follows the backpressure; math.inf waits without limit."""
        await self._write.acquire(self._backpressure.resolve(timeout))
        try:
            self._store.insert(item)
        except InvariantViolation:
            log.error("insert failed while holding a write permit; permit leaked")
            raise
        self._produced += 1
        self._read.release()

    async def consume(self, timeout: float | None = None) -> Any:
        await self._read.acquire(self._backpressure.resolve(timeout))
        try:
            item = self._store.remove_last()
        except InvariantViolation:
            log.error("remove failed while holding a read permit; permit leaked")
            raise
        self._consumed += 1
        self._write.release()
        return item

    def shutdown(self) -> None:
        first = self._write.close()
        self._read.close()
        if first:
            log.debug("Async buffer shut down with %d item(s) left", len(self._store))

    def drain(self) -> list[Any]:
        if not self.closed:
            raise InvariantViolation("drain() requires shutdown() first")
        count = self._read.take_all()
        taken = [self._store.remove_last() for _ in range(count)]
        for _ in range(count):
            self._write.release()
        taken.reverse()
        return taken

    def stats(self) -> BufferStats:
        return BufferStats(
            capacity=self._store.capacity,
            size=len(self._store),
            write_permits=self._write.available,
            read_permits=self._read.available,
            produced=self._produced,
            consumed=self._consumed,
            closed=self.closed,
        )

    def __len__(self) -> int:
        return len(self._store)
