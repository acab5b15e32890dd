"""Base class for backend handles.

A handle is constructed cheaply (no I/O) and only touches the underlying
file, URL or device once ``open()`` is awaited. Blocking calls run in a worker
thread so a resolution stays a sequence of awaitable steps.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import BinaryIO, Optional

from flashsource.domain.model import PartitionTable, SourceMetadata
from flashsource.sources.partitions import PROBE_SIZE, read_partition_table

__all__ = ["SourceBase"]


class SourceBase(ABC):
    """Common lifecycle for file, HTTP, block-device and container sources."""

    def __init__(self) -> None:
        self._opened = False
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self._opened and not self._closed

    async def open(self) -> None:
        """Open the underlying resource.

        Whatever ``_open`` acquired before failing is released before the
        error propagates.
        """
        if self._opened:
            return
        try:
            await asyncio.to_thread(self._open)
        except Exception:
            await asyncio.to_thread(self._close)
            raise
        self._opened = True

    async def close(self) -> None:
        if not self._opened or self._closed:
            return
        self._closed = True
        await asyncio.to_thread(self._close)

    async def get_inner_source(self) -> SourceBase:
        return self

    async def get_metadata(self) -> SourceMetadata:
        return await asyncio.to_thread(self._get_metadata)

    async def get_partition_table(self) -> Optional[PartitionTable]:
        head = await self.read(0, PROBE_SIZE)
        return read_partition_table(head)

    async def read(self, offset: int, length: int) -> bytes:
        """Read up to ``length`` bytes at ``offset`` (short at end of source)."""
        if not self.is_open:
            raise RuntimeError(f"{type(self).__name__} is not open")
        return await asyncio.to_thread(self._read, offset, length)

    def open_stream(self) -> BinaryIO:
        """Return a seekable binary stream over the raw bytes.

        Container sources (compressed files, zip archives) read their parent
        through this stream.
        """
        raise NotImplementedError(f"{type(self).__name__} cannot be streamed")

    async def __aenter__(self) -> SourceBase:
        await self.open()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    @abstractmethod
    def _open(self) -> None:
        ...

    @abstractmethod
    def _close(self) -> None:
        ...

    @abstractmethod
    def _read(self, offset: int, length: int) -> bytes:
        ...

    @abstractmethod
    def _get_metadata(self) -> SourceMetadata:
        ...
