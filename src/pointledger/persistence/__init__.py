"""Persistence layer - State store adapters and record codec."""

from .codec import CodecError, Point, Transaction
from .store import MemoryStateStore, SqliteStateStore, StateStore

__all__ = [
    "CodecError",
    "Point",
    "Transaction",
    "StateStore",
    "MemoryStateStore",
    "SqliteStateStore",
]
