"""Domain model for permit_buffer.

Re-exports the error taxonomy and shared types:
    from permit_buffer.domain import Shutdown, Cancelled, BufferStats
"""
from permit_buffer.domain.errors import (
    Cancelled,
    InvalidConfiguration,
    InvariantViolation,
    PermitBufferError,
    Shutdown,
)
from permit_buffer.domain.types import BufferStats, PermitKind

__all__ = [
    "Cancelled",
    "InvalidConfiguration",
    "InvariantViolation",
    "PermitBufferError",
    "Shutdown",
    "BufferStats",
    "PermitKind",
]
