"""Concurrency core of the bounded buffer.

Built bottom-up:
  - CancelToken: one-shot signal that wakes blocked acquires
  - CountingPermit: FIFO semaphore with timeout, cancel and close
  - AdmissionCoordinator: write/read permits plus the store mutex
  - Backpressure: block, time out, or fail fast when no permit is free
  - BoundedBuffer: the produce/consume/shutdown API for threads
  - AsyncBoundedBuffer: the same API for asyncio tasks
"""
from permit_buffer.concurrency.async_buffer import AsyncBoundedBuffer, AsyncCountingPermit
from permit_buffer.concurrency.backpressure import Backpressure, BackpressureMode
from permit_buffer.concurrency.bounded_buffer import BoundedBuffer
from permit_buffer.concurrency.cancel import CancelToken
from permit_buffer.concurrency.coordinator import AdmissionCoordinator
from permit_buffer.concurrency.permit import CountingPermit

__all__ = [
    "AsyncBoundedBuffer",
    "AsyncCountingPermit",
    "Backpressure",
    "BackpressureMode",
    "BoundedBuffer",
    "CancelToken",
    "AdmissionCoordinator",
    "CountingPermit",
]
