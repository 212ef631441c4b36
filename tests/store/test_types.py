"""Tests for the BufferStats snapshot."""
from __future__ import annotations

from permit_buffer.domain.types import BufferStats


def _stats(size, write, read, capacity=4):
    return BufferStats(
        capacity=capacity,
        size=size,
        write_permits=write,
        read_permits=read,
        produced=size,
        consumed=0,
        closed=False,
    )


def test_consistent_when_counters_match_size():
    assert _stats(size=3, write=1, read=3).consistent
    assert _stats(size=0, write=4, read=0).consistent


def test_inconsistent_when_a_permit_is_in_flight():
    """A producer holding a write permit before inserting shows as a gap."""
    assert not _stats(size=1, write=2, read=1).consistent
    assert not _stats(size=2, write=2, read=1).consistent
