"""Producer and consumer workers: background threads running the protocol.

A worker is a role, not a special kind of thread. It loops over the
buffer's produce() or consume() until it runs out of work, the buffer
shuts down, or someone calls stop().

Exit reasons:
    finished      - produced every item / consumed its quota
    Shutdown      - buffer shut down; a normal stop
    Cancelled     - stop() was called, or a timeout with retries off
    InvariantViolation - fatal; logged and kept in .error
    anything else - e.g. a sink that raises; logged and kept in .error

Retry policy lives here, not in the buffer: with retry_on_timeout=True
a timed-out acquire is counted and tried again with the same item.
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from functools import partial
from typing import Any, Callable, Iterable

from permit_buffer.concurrency.bounded_buffer import BoundedBuffer
from permit_buffer.concurrency.cancel import CancelToken
from permit_buffer.domain.errors import Cancelled, InvariantViolation, Shutdown

log = logging.getLogger(__name__)


class _Worker(ABC):
    """Shared thread lifecycle for both roles.

    Args:
        buffer: The shared BoundedBuffer.
        name: Thread name, also used in logs.
        retry_on_timeout: Retry a timed-out acquire instead of exiting.
    """

    def __init__(
        self,
        buffer: BoundedBuffer,
        name: str,
        retry_on_timeout: bool = False,
    ) -> None:
        self._buffer = buffer
        self._name = name
        self._retry_on_timeout = retry_on_timeout
        self._cancel = CancelToken()
        self._thread: threading.Thread | None = None
        self._processed = 0
        self._timeouts = 0
        self._error: Exception | None = None
        self._exit_reason = "not started"
        self._lock = threading.Lock()  # protects the counters above

    @property
    def name(self) -> str:
        return self._name

    @property
    def processed(self) -> int:
        with self._lock:
            return self._processed

    @property
    def timeouts(self) -> int:
        with self._lock:
            return self._timeouts

    @property
    def error(self) -> Exception | None:
        with self._lock:
            return self._error

    @property
    def exit_reason(self) -> str:
        with self._lock:
            return self._exit_reason

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the worker thread. A second call is a no-op."""
        if self._thread is not None:
            return
        with self._lock:
            self._exit_reason = "running"
        self._thread = threading.Thread(target=self._run, daemon=True, name=self._name)
        self._thread.start()

    def stop(self) -> None:
        """Ask the worker to exit, waking it if blocked in an acquire."""
        self._cancel.cancel()

    def join(self, timeout: float | None = 5.0) -> bool:
        """Wait for the thread. Returns True if it has exited."""
        if self._thread is None:
            return True
        self._thread.join(timeout=timeout)
        return not self._thread.is_alive()

    def _run(self) -> None:
        log.debug("%s started", self._name)
        reason = "finished"
        try:
            self._loop()
        except Shutdown:
            reason = "shutdown"
        except Cancelled:
            reason = "stopped" if self._cancel.cancelled else "timed out"
        except InvariantViolation as exc:
            log.exception("%s hit an invariant violation", self._name)
            reason = "failed"
            with self._lock:
                self._error = exc
        except Exception as exc:
            log.exception("%s crashed", self._name)
            reason = "failed"
            with self._lock:
                self._error = exc
        with self._lock:
            self._exit_reason = reason
        log.debug("%s exited: %s after %d item(s)", self._name, reason, self.processed)

    @abstractmethod
    def _loop(self) -> None:
        """Run the role until its work is done. Exceptions end the worker."""

    def _attempt(self, op: Callable[[], Any]) -> Any:
        while True:
            try:
                return op()
            except Cancelled:
                if self._cancel.cancelled or not self._retry_on_timeout:
                    raise
                with self._lock:
                    self._timeouts += 1

    def _bump(self) -> None:
        with self._lock:
            self._processed += 1


class ProducerWorker(_Worker):
    """Produces every item from an iterable, in order.

    Args:
        buffer: The shared BoundedBuffer.
        items: What to produce. Consumed lazily on the worker thread.
        name: Thread name (default "producer").
        retry_on_timeout: Retry a timed-out produce with the same item.
    """

    def __init__(
        self,
        buffer: BoundedBuffer,
        items: Iterable[Any],
        name: str = "producer",
        retry_on_timeout: bool = False,
    ) -> None:
        super().__init__(buffer, name, retry_on_timeout)
        self._items = items

    def _loop(self) -> None:
        for item in self._items:
            if self._cancel.cancelled:
                raise Cancelled(f"{self._name} stopped")
            self._attempt(partial(self._buffer.produce, item, cancel=self._cancel))
            self._bump()


class ConsumerWorker(_Worker):
    """Consumes up to limit items (forever if None), collecting them.

    Args:
        buffer: The shared BoundedBuffer.
        limit: Items to consume before exiting. None runs until shutdown/stop.
        name: Thread name (default "consumer").
        retry_on_timeout: Retry a timed-out consume.
        sink: Called with each item. Defaults to appending to .items.
    """

    def __init__(
        self,
        buffer: BoundedBuffer,
        limit: int | None = None,
        name: str = "consumer",
        retry_on_timeout: bool = False,
        sink: Callable[[Any], None] | None = None,
    ) -> None:
        super().__init__(buffer, name, retry_on_timeout)
        self._limit = limit
        self._items: list[Any] = []
        self._sink = sink

    @property
    def items(self) -> list[Any]:
        """Copy of everything consumed so far (empty when a sink is set)."""
        with self._lock:
            return list(self._items)

    def _loop(self) -> None:
        while self._limit is None or self.processed < self._limit:
            if self._cancel.cancelled:
                raise Cancelled(f"{self._name} stopped")
            item = self._attempt(partial(self._buffer.consume, cancel=self._cancel))
            if self._sink is not None:
                self._sink(item)
            else:
                with self._lock:
                    self._items.append(item)
            self._bump()
