"""Admission coordinator: two counting permits plus the store mutex.

The textbook broken producer looks like this:

    if len(buffer) < capacity:     # every producer sees room...
        buffer.append(item)        # ...and all of them append

Several threads can pass the check before any of them commits, so the
buffer overflows. Wrapping the whole thing in one big lock fixes the
race but serializes producers and consumers that don't conflict.

Instead the coordinator keeps two counters:

    write permits: free slots,   starts at capacity
    read permits:  filled slots, starts at 0

A producer takes a write permit before touching the store, and hands a
read permit to consumers after inserting. The number of outstanding
"you may write" tokens can never exceed free capacity, so the size
check is gone entirely. The mutex only covers the store mutation
itself, which is a few pointer swaps.

Lock order: mutex -> permit lock. Permit locks are never held while
taking the mutex.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from permit_buffer.concurrency.cancel import CancelToken
from permit_buffer.concurrency.permit import CountingPermit
from permit_buffer.domain.errors import Cancelled, InvalidConfiguration
from permit_buffer.domain.types import PermitKind

log = logging.getLogger(__name__)


class AdmissionCoordinator:
    """Gates producers and consumers over a store of fixed capacity.

    Args:
        capacity: Number of slots in the store. Must be a positive int.
    """

    def __init__(self, capacity: int) -> None:
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity <= 0:
            raise InvalidConfiguration(f"capacity must be a positive int, got {capacity!r}")
        self._capacity = capacity
        self._permits: dict[PermitKind, CountingPermit] = {
            PermitKind.WRITE: CountingPermit(capacity, limit=capacity, name="write permit"),
            PermitKind.READ: CountingPermit(0, limit=capacity, name="read permit"),
        }
        self._mutex = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def write_permits(self) -> int:
        return self._permits[PermitKind.WRITE].available

    @property
    def read_permits(self) -> int:
        return self._permits[PermitKind.READ].available

    @property
    def closed(self) -> bool:
        return self._permits[PermitKind.WRITE].closed

    def waiting(self, kind: PermitKind) -> int:
        """Threads currently blocked on the given permit."""
        return self._permits[kind].waiting

    def acquire_write(
        self,
        timeout: float | None = None,
        cancel: CancelToken | None = None,
    ) -> None:
        """Block until a free slot is available, then claim it."""
        self._acquire(PermitKind.WRITE, timeout, cancel)

    def acquire_read(
        self,
        timeout: float | None = None,
        cancel: CancelToken | None = None,
    ) -> None:
        """Block until a filled slot is available, then claim it."""
        self._acquire(PermitKind.READ, timeout, cancel)

    def release_read(self) -> None:
        """Publish one filled slot. Call once per completed insert."""
        self._permits[PermitKind.READ].release()

    def release_write(self) -> None:
        """Publish one free slot. Call once per completed removal."""
        self._permits[PermitKind.WRITE].release()

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        """Hold the store mutex. At most one insert or remove at a time."""
        with self._mutex:
            yield

    def reclaim_filled(self) -> int:
        """Take every free read permit, for draining after close().

        Must be called while holding exclusive(). Consumers that already
        hold a read permit keep it and still find their item.
        """
        return self._permits[PermitKind.READ].take_all()

    def close(self) -> bool:
        """Fail blocked and future acquires with Shutdown. Idempotent.

        Returns True only on the call that actually closed.
        """
        first = self._permits[PermitKind.WRITE].close()
        self._permits[PermitKind.READ].close()
        if first:
            log.debug("Coordinator closed (capacity=%d)", self._capacity)
        return first

    def _acquire(
        self,
        kind: PermitKind,
        timeout: float | None,
        cancel: CancelToken | None,
    ) -> None:
        try:
            self._permits[kind].acquire(timeout=timeout, cancel=cancel)
        except Cancelled as exc:
            log.debug("%s acquire gave up: %s", kind.name.lower(), exc)
            raise
