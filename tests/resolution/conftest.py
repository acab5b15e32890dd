"""Fakes for driving the resolution pipeline without real I/O."""

from __future__ import annotations

from typing import Callable, Optional

import pytest

from flashsource.domain.model import PartitionEntry, PartitionTable, SourceMetadata

MBR_TABLE = PartitionTable(
    type="mbr",
    partitions=(PartitionEntry(index=1, offset=4 * 1024 * 1024, size=256 * 1024 * 1024, type="0x0c"),),
)


class FakeHandle:
    """Backend handle with scripted results and call bookkeeping."""

    def __init__(
        self,
        *,
        metadata: SourceMetadata | None = None,
        table: Optional[PartitionTable] = MBR_TABLE,
        inner: "FakeHandle | None" = None,
        open_error: Exception | None = None,
        metadata_error: Exception | None = None,
        close_error: Exception | None = None,
    ) -> None:
        self.metadata = metadata or SourceMetadata(size=4 * 1024**3, name="disk.img")
        self.table = table
        self.inner = inner
        self.open_error = open_error
        self.metadata_error = metadata_error
        self.close_error = close_error
        self.calls: list[str] = []

    @property
    def closed(self) -> bool:
        return "close" in self.calls

    async def open(self) -> None:
        self.calls.append("open")
        if self.open_error is not None:
            raise self.open_error

    async def get_inner_source(self) -> "FakeHandle":
        self.calls.append("get_inner_source")
        return self.inner or self

    async def get_metadata(self) -> SourceMetadata:
        self.calls.append("get_metadata")
        if self.metadata_error is not None:
            raise self.metadata_error
        return self.metadata

    async def get_partition_table(self) -> Optional[PartitionTable]:
        self.calls.append("get_partition_table")
        return self.table

    async def close(self) -> None:
        self.calls.append("close")
        if self.close_error is not None:
            raise self.close_error


class FakeFactory:
    """Hands out one handle per create_source call, or raises ``error``."""

    def __init__(self, handle: FakeHandle | None = None, error: Exception | None = None) -> None:
        self.handle = handle or FakeHandle()
        self.error = error
        self.selections: list = []

    async def create_source(self, selection):
        self.selections.append(selection)
        if self.error is not None:
            raise self.error
        return self.handle


@pytest.fixture
def make_handle() -> Callable[..., FakeHandle]:
    return FakeHandle


@pytest.fixture
def make_factory() -> Callable[..., FakeFactory]:
    return FakeFactory
