"""Unsynchronized fixed-capacity storage behind the bounded buffer."""
from permit_buffer.store.bounded_store import BoundedStore

__all__ = ["BoundedStore"]
