"""Error taxonomy for the bounded buffer.

Four kinds, all surfaced synchronously to the calling worker:

  - InvalidConfiguration: bad constructor arguments. Fatal.
  - InvariantViolation: store and permits disagree. A programming error,
    never retried; the affected worker should stop.
  - Shutdown: the buffer was shut down. Recoverable, means "stop".
  - Cancelled: a blocked acquire was interrupted by a cancel token,
    a timeout, or a fail-fast backpressure strategy. Recoverable.
"""
from __future__ import annotations


class PermitBufferError(Exception):
    """Base class for every error raised by permit_buffer."""


class InvalidConfiguration(PermitBufferError, ValueError):
    """Raised when a buffer or strategy is constructed with bad arguments."""


class InvariantViolation(PermitBufferError, RuntimeError):
    """Raised when the store is mutated without a matching permit."""


class Shutdown(PermitBufferError):
    """Raised by produce/consume once the buffer has been shut down."""


class Cancelled(PermitBufferError):
    """Raised when a blocked acquire gives up without taking a permit."""
