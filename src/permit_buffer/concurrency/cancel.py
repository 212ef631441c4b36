"""Cancellation token for blocked acquires.

A CancelToken is a one-shot flag shared between whoever wants to stop
a worker (a supervisor, a shutdown hook, a test) and the worker's
blocking calls. Blocked acquires register a wake-up callback on the
token; cancel() fires every registered callback so the waiter notices
immediately instead of polling.

Usage:
    token = CancelToken()
    threading.Thread(target=lambda: buffer.consume(cancel=token)).start()
    token.cancel()   # the consume() raises Cancelled
"""
from __future__ import annotations

import threading
from typing import Callable


class CancelToken:
    """Thread-safe one-shot cancellation signal."""

    __slots__ = ("_event", "_lock", "_callbacks")

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Set the flag and fire all registered callbacks. Idempotent."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        # Outside the lock: callbacks may take other locks.
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> bool:
        """Register callback to run on cancel().

        Returns False without registering if the token is already
        cancelled. The caller handles that case itself.
        """
        with self._lock:
            if self._event.is_set():
                return False
            self._callbacks.append(callback)
            return True

    def remove_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)
