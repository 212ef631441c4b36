"""Bounded blocking buffer: the public producer/consumer API.

Producer protocol, once per produce():
    acquire write permit -> insert under mutex -> release read permit
Consumer protocol, once per consume():
    acquire read permit  -> remove under mutex -> release write permit

The only place a caller can block is the acquire. Release never blocks.
The release happens while the mutex is still held, so a stats()
snapshot never sees a read-permit count that disagrees with the store.

If the store rejects a mutation after the permit was granted, the
permit is not returned. That can only happen if the coordinator and
the store have drifted apart, so the error is logged and re-raised
rather than papered over.

Usage:
    buf = BoundedBuffer(capacity=8)
    buf.produce("job-1")
    item = buf.consume()
    buf.shutdown()          # blocked produce/consume raise Shutdown
    leftovers = buf.drain()
"""
from __future__ import annotations

import logging
from typing import Any

from permit_buffer.concurrency.backpressure import Backpressure
from permit_buffer.concurrency.cancel import CancelToken
from permit_buffer.concurrency.coordinator import AdmissionCoordinator
from permit_buffer.domain.errors import InvariantViolation
from permit_buffer.domain.types import BufferStats
from permit_buffer.store.bounded_store import BoundedStore

log = logging.getLogger(__name__)


class BoundedBuffer:
    """Fixed-capacity buffer shared by any number of producers and consumers.

    Args:
        capacity: Number of slots. Non-positive values raise InvalidConfiguration.
        backpressure: What to do when no permit is free (default: block).
    """

    def __init__(self, capacity: int, backpressure: Backpressure | None = None) -> None:
        self._store = BoundedStore(capacity)
        self._coordinator = AdmissionCoordinator(capacity)
        self._backpressure = backpressure or Backpressure.block()
        # guarded by the coordinator mutex
        self._produced = 0
        self._consumed = 0

    @property
    def capacity(self) -> int:
        return self._store.capacity

    @property
    def backpressure(self) -> Backpressure:
        return self._backpressure

    @property
    def closed(self) -> bool:
        return self._coordinator.closed

    @property
    def coordinator(self) -> AdmissionCoordinator:
        """Access the coordinator (for test assertions)."""
        return self._coordinator

    def produce(
        self,
        item: Any,
        timeout: float | None = None,
        cancel: CancelToken | None = None,
    ) -> None:
        """Insert item, blocking while the buffer is full.

        timeout=None follows the buffer's backpressure; a number overrides
        it for this call, and math.inf waits without limit.

        Raises:
            Shutdown: the buffer was shut down before a slot was granted.
            Cancelled: the token fired or the timeout elapsed first.
            InvariantViolation: the store refused the insert (fatal).
        """
        self._coordinator.acquire_write(self._backpressure.resolve(timeout), cancel)
        with self._coordinator.exclusive():
            try:
                self._store.insert(item)
            except InvariantViolation:
                log.error("insert failed while holding a write permit; permit leaked")
                raise
            self._produced += 1
            self._coordinator.release_read()

    def consume(
        self,
        timeout: float | None = None,
        cancel: CancelToken | None = None,
    ) -> Any:
        """Remove and return the newest item, blocking while empty.

        timeout works as in produce(), and it raises the same errors.
        """
        self._coordinator.acquire_read(self._backpressure.resolve(timeout), cancel)
        with self._coordinator.exclusive():
            try:
                item = self._store.remove_last()
            except InvariantViolation:
                log.error("remove failed while holding a read permit; permit leaked")
                raise
            self._consumed += 1
            self._coordinator.release_write()
        return item

    def shutdown(self) -> None:
        """Fail blocked and future produce/consume calls with Shutdown.

        Calling it again has no further effect. Operations that already
        hold a permit finish normally.
        """
        if self._coordinator.close():
            log.debug("Buffer shut down with %d item(s) left", len(self))

    def drain(self) -> list[Any]:
        """Remove items no consumer has claimed, oldest first.

        Only valid after shutdown(): draining a live buffer would race
        consumers for the same items.
        """
        if not self.closed:
            raise InvariantViolation("drain() requires shutdown() first")
        with self._coordinator.exclusive():
            count = self._coordinator.reclaim_filled()
            taken = [self._store.remove_last() for _ in range(count)]
            for _ in range(count):
                self._coordinator.release_write()
        taken.reverse()
        return taken

    def stats(self) -> BufferStats:
        """Consistent snapshot of size, counters and totals."""
        with self._coordinator.exclusive():
            return BufferStats(
                capacity=self._store.capacity,
                size=len(self._store),
                write_permits=self._coordinator.write_permits,
                read_permits=self._coordinator.read_permits,
                produced=self._produced,
                consumed=self._consumed,
                closed=self._coordinator.closed,
            )

    def __len__(self) -> int:
        with self._coordinator.exclusive():
            return len(self._store)

    def __repr__(self) -> str:
        return (
            f"BoundedBuffer(capacity={self.capacity}, size={len(self)}, "
            f"closed={self.closed})"
        )
