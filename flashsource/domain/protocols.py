"""Protocol definitions for dependency injection and abstraction.

This module defines the interfaces the resolution pipeline expects from its
collaborators (backend handles, persistent storage, the selection store and
the presentation layer), allowing the core to run without depending on any
specific UI framework or persistence backend.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, Protocol, Union, runtime_checkable

from flashsource.domain.model import (
    Anomaly,
    ErrorRecord,
    PartitionTable,
    SourceDescriptor,
    SourceMetadata,
)

__all__ = [
    "AnomalyListener",
    "BackendHandle",
    "ErrorPresenter",
    "KeyValueStorage",
    "SelectionStore",
    "WarningConfirmation",
]


@runtime_checkable
class BackendHandle(Protocol):
    """Opened capability for reading bytes and metadata from a source."""

    async def open(self) -> None:
        """Open the underlying stream; raises the backend's native error."""
        ...

    async def get_inner_source(self) -> BackendHandle:
        """Return the payload inside a container, or ``self``."""
        ...

    async def get_metadata(self) -> SourceMetadata:
        ...

    async def get_partition_table(self) -> Optional[PartitionTable]:
        """Return the partition table, or None when the source has none."""
        ...

    async def close(self) -> None:
        ...


class KeyValueStorage(Protocol):
    """String key-value persistence (used for the recent-URL list)."""

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class SelectionStore(Protocol):
    """Application-wide holder of the currently selected source."""

    def select_source(self, descriptor: SourceDescriptor) -> None:
        ...

    def deselect_source(self) -> None:
        ...

    def get_source(self) -> SourceDescriptor | None:
        ...

    def has_source(self) -> bool:
        ...


# Receives the error record of a failed resolution (e.g. shows a dialog)
ErrorPresenter = Callable[[ErrorRecord], None]

# Notified of every anomaly the classifier reports, fatal ones included
AnomalyListener = Callable[[Anomaly], None]

# Asked once per warning after commit; returning False aborts the selection
WarningConfirmation = Callable[[Anomaly], Union[bool, Awaitable[bool]]]
