"""Default selection store: holds the descriptor the flash step will use."""

from __future__ import annotations

import threading
from typing import Callable

import structlog

from flashsource.domain.model import SourceDescriptor

__all__ = ["InMemorySelectionStore", "SelectionObserver"]

logger = structlog.get_logger(__name__)

SelectionObserver = Callable[["SourceDescriptor | None"], None]


class InMemorySelectionStore:
    """Thread-safe single-slot selection store.

    The last ``select_source`` call wins. Observers are called with the new
    descriptor (or None after a deselect) outside the lock.

    Example:
        >>> store = InMemorySelectionStore()
        >>> store.has_source()
        False
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: SourceDescriptor | None = None
        self._observers: list[SelectionObserver] = []

    def select_source(self, descriptor: SourceDescriptor) -> None:
        with self._lock:
            self._current = descriptor
            observers = list(self._observers)
        logger.debug("Source selected", path=descriptor.path)
        for observer in observers:
            observer(descriptor)

    def deselect_source(self) -> None:
        with self._lock:
            had_source = self._current is not None
            self._current = None
            observers = list(self._observers)
        if had_source:
            for observer in observers:
                observer(None)

    def get_source(self) -> SourceDescriptor | None:
        with self._lock:
            return self._current

    def has_source(self) -> bool:
        with self._lock:
            return self._current is not None

    def observe(self, observer: SelectionObserver) -> Callable[[], None]:
        """Register ``observer``; returns a function that unregisters it."""
        with self._lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe
