"""Capacity-bounded store: the data half of the bounded buffer.

A deque with a hard ceiling and no locking of its own:
the AdmissionCoordinator owns the mutex and the permits, and callers
must hold both before touching the store. The checks in insert() and
remove_last() should be unreachable when the coordinator is used
correctly. If one fires, the permits and the store have drifted
apart, which is a bug and not a retryable condition.
"""
from __future__ import annotations

from collections import deque
from typing import Any

from permit_buffer.domain.errors import InvalidConfiguration, InvariantViolation


class BoundedStore:
    """Fixed-capacity ordered sequence.

    INVARIANT: 0 <= len(store) <= capacity at every observable instant.
    Violations raise InvariantViolation immediately and leave the
    contents untouched.
    """

    __slots__ = ("_capacity", "_items")

    def __init__(self, capacity: int) -> None:
        if isinstance(capacity, bool) or not isinstance(capacity, int):
            raise InvalidConfiguration(
                f"capacity must be an int, got {type(capacity).__name__}"
            )
        if capacity <= 0:
            raise InvalidConfiguration(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._items: deque[Any] = deque()

    @property
    def capacity(self) -> int:
        return self._capacity

    def insert(self, item: Any) -> None:
        """Append item. Caller must hold a write permit."""
        if len(self._items) >= self._capacity:
            raise InvariantViolation(
                f"insert into full store (capacity={self._capacity})"
            )
        self._items.append(item)

    def remove_last(self) -> Any:
        """Remove and return the most recently inserted item.

        Caller must hold a read permit.
        """
        if not self._items:
            raise InvariantViolation("remove_last from empty store")
        return self._items.pop()

    def drain(self) -> list[Any]:
        """Remove everything, oldest first."""
        items = list(self._items)
        self._items.clear()
        return items

    def is_full(self) -> bool:
        return len(self._items) >= self._capacity

    def is_empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"BoundedStore(capacity={self._capacity}, size={len(self._items)})"
