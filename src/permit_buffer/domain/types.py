"""Shared enums and the stats snapshot used across the package."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class PermitKind(Enum):
    """Which counter an acquire draws from.

    WRITE counts free slots, READ counts filled slots. Every unit of
    capacity is counted by exactly one of the two when nothing is
    mid-flight.
    """
    WRITE = auto()
    READ = auto()


@dataclass(frozen=True, slots=True)
class BufferStats:
    """Point-in-time view of a buffer, taken under the store mutex."""
    capacity: int
    size: int
    write_permits: int
    read_permits: int
    produced: int
    consumed: int
    closed: bool

    @property
    def consistent(self) -> bool:
        """True when both permit counters agree with the store length.

        Only meaningful when no produce/consume is mid-flight: a worker
        that holds a write permit but has not inserted yet shows up as
        one missing write permit.
        """
        return (
            self.write_permits + self.size == self.capacity
            and self.read_permits == self.size
        )
