"""Persistence: key-value storage and the selection store."""

from .kv import JsonFileStorage, MemoryStorage
from .selection import InMemorySelectionStore, SelectionObserver

__all__ = [
    "InMemorySelectionStore",
    "JsonFileStorage",
    "MemoryStorage",
    "SelectionObserver",
]
