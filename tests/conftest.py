"""Shared fixtures for the buffer test suites.

Provides a polling helper, a background-call runner, and a buffer
factory that shuts every buffer down after the test so no thread is
left blocked in an acquire.
"""
from __future__ import annotations

import threading
import time
from typing import Any, Callable

import pytest

from permit_buffer.concurrency.backpressure import Backpressure
from permit_buffer.concurrency.bounded_buffer import BoundedBuffer


def _wait_until(
    predicate: Callable[[], bool],
    timeout: float = 5.0,
    interval: float = 0.005,
) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class BackgroundCall:
    """Runs fn(*args, **kwargs) on a daemon thread and records the outcome."""

    def __init__(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        self.result: Any = None
        self.error: Exception | None = None
        self.done = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(fn, args, kwargs), daemon=True
        )

    def start(self) -> BackgroundCall:
        self._thread.start()
        return self

    def wait(self, timeout: float = 5.0) -> bool:
        return self.done.wait(timeout)

    def _run(self, fn, args, kwargs) -> None:
        try:
            self.result = fn(*args, **kwargs)
        except Exception as exc:
            self.error = exc
        finally:
            self.done.set()


@pytest.fixture()
def wait_until():
    """Poll a predicate until it holds or the timeout elapses."""
    return _wait_until


@pytest.fixture()
def spawn():
    """Start fn in the background; returns a BackgroundCall."""
    def _spawn(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> BackgroundCall:
        return BackgroundCall(fn, *args, **kwargs).start()

    return _spawn


@pytest.fixture()
def make_buffer():
    """Factory for BoundedBuffers that are shut down after the test."""
    buffers: list[BoundedBuffer] = []

    def _create(capacity: int, backpressure: Backpressure | None = None) -> BoundedBuffer:
        buf = BoundedBuffer(capacity, backpressure)
        buffers.append(buf)
        return buf

    yield _create

    for buf in buffers:
        buf.shutdown()
