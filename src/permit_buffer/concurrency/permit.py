"""Fair counting permit: a semaphore that can be cancelled and closed.

threading.Semaphore gets us most of the way, but it has three gaps
for the bounded buffer:

  1. No fairness. A thread arriving just as a permit is released can
     barge past threads that have been waiting for seconds.
  2. No external cancellation. Only a timeout can pull a thread out.
  3. No close(). Threads blocked at shutdown stay blocked forever.

This version keeps an explicit FIFO queue of waiters. release() hands
the permit straight to the oldest waiter instead of bumping the
counter, so the permit can't be stolen between the wake-up and the
waiter re-acquiring the lock. New arrivals only take a permit from
the counter when nobody is queued.

Every way out of acquire() other than success leaves the counter
exactly as it was. A waiter that was granted a permit at the same
instant its timeout or cancel fired keeps the grant (the acquire
succeeds) rather than dropping it.

Usage:
    slots = CountingPermit(4, name="write")
    slots.acquire(timeout=1.0)      # raises Cancelled on timeout
    ...
    slots.release()
"""
from __future__ import annotations

import threading
from collections import deque

from permit_buffer.concurrency.cancel import CancelToken
from permit_buffer.domain.errors import (
    Cancelled,
    InvalidConfiguration,
    InvariantViolation,
    Shutdown,
)


class _Waiter:
    __slots__ = ("event", "granted", "closed")

    def __init__(self) -> None:
        self.event = threading.Event()
        self.granted = False
        self.closed = False


class CountingPermit:
    """FIFO counting semaphore with timeout, cancel token and close.

    Args:
        initial: Permits available at construction.
        limit: Ceiling on available permits. A release() past it means
            someone released a permit they never acquired, and raises
            InvariantViolation. Defaults to initial.
        name: Used in error messages and logs.
    """

    def __init__(
        self,
        initial: int,
        limit: int | None = None,
        name: str = "permit",
    ) -> None:
        if initial < 0:
            raise InvalidConfiguration(f"initial permits must be >= 0, got {initial}")
        limit = initial if limit is None else limit
        if limit < initial or limit <= 0:
            raise InvalidConfiguration(
                f"limit must be positive and >= initial ({initial}), got {limit}"
            )
        self._name = name
        self._available = initial
        self._limit = limit
        self._waiters: deque[_Waiter] = deque()
        self._closed = False
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def available(self) -> int:
        with self._lock:
            return self._available

    @property
    def waiting(self) -> int:
        """Number of threads currently queued in acquire()."""
        with self._lock:
            return len(self._waiters)

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def acquire(
        self,
        timeout: float | None = None,
        cancel: CancelToken | None = None,
    ) -> None:
        """Take one permit, blocking while none is free.

        timeout=None waits forever; timeout=0 never waits.

        Raises:
            Shutdown: the permit is closed, or was closed while waiting.
            Cancelled: the token fired or the timeout elapsed first.
        """
        if timeout is not None and timeout < 0:
            raise InvalidConfiguration(f"timeout must be >= 0, got {timeout}")

        with self._lock:
            if self._closed:
                raise Shutdown(f"{self._name} is closed")
            if cancel is not None and cancel.cancelled:
                raise Cancelled(f"{self._name} acquire cancelled")
            if self._available > 0 and not self._waiters:
                self._available -= 1
                return
            if timeout is not None and timeout == 0:
                raise Cancelled(f"no {self._name} available")
            waiter = _Waiter()
            self._waiters.append(waiter)

        wake = waiter.event.set
        registered = False
        if cancel is not None:
            registered = cancel.add_callback(wake)
            if not registered:
                # Cancelled between the check above and registration.
                wake()

        try:
            waiter.event.wait(timeout)
        except BaseException:
            self._abandon(waiter)
            raise
        finally:
            if registered:
                cancel.remove_callback(wake)

        with self._lock:
            if waiter.granted:
                return
            if waiter.closed:
                raise Shutdown(f"{self._name} closed while waiting")
            self._waiters.remove(waiter)

        if cancel is not None and cancel.cancelled:
            raise Cancelled(f"{self._name} acquire cancelled")
        raise Cancelled(f"timed out after {timeout}s waiting for {self._name}")

    def release(self) -> None:
        """Return one permit, handing it to the oldest waiter if any.

        Never blocks. Allowed after close() so in-flight holders can
        finish their protocol.
        """
        with self._lock:
            self._release_locked()

    def take_all(self) -> int:
        """Remove every free permit from the counter and return how many.

        Works on a closed permit; used when tearing a buffer down.
        """
        with self._lock:
            taken, self._available = self._available, 0
            return taken

    def close(self) -> bool:
        """Fail all current and future acquires with Shutdown.

        Returns True on the first call, False on repeats.
        """
        with self._lock:
            if self._closed:
                return False
            self._closed = True
            waiters = list(self._waiters)
            self._waiters.clear()
            for waiter in waiters:
                waiter.closed = True
                waiter.event.set()
            return True

    def _release_locked(self) -> None:
        if self._waiters:
            waiter = self._waiters.popleft()
            waiter.granted = True
            waiter.event.set()
            return
        if self._available >= self._limit:
            raise InvariantViolation(
                f"{self._name} released past its limit of {self._limit}"
            )
        self._available += 1

    def _abandon(self, waiter: _Waiter) -> None:
        """Back out of a wait that was interrupted by an exception."""
        with self._lock:
            if waiter.granted:
                # The permit was ours; pass it on instead of leaking it.
                self._release_locked()
            elif waiter in self._waiters:
                self._waiters.remove(waiter)

    def __repr__(self) -> str:
        return (
            f"CountingPermit(name={self._name!r}, available={self._available}, "
            f"waiting={len(self._waiters)}, closed={self._closed})"
        )
