"""Metadata extractor: descriptor construction from a handle."""

from __future__ import annotations

import asyncio

import pytest

from flashsource.domain.exceptions import MetadataError, SourceOpenError
from flashsource.domain.model import (
    DeviceDescriptor,
    DeviceSelection,
    FileSelection,
    SourceKind,
    SourceMetadata,
    UrlSelection,
)
from flashsource.resolution.extractor import MetadataExtractor


def _extract(handle, selection):
    return asyncio.run(MetadataExtractor().extract(handle, selection))


def test_file_descriptor(make_handle) -> None:
    handle = make_handle(metadata=SourceMetadata(size=1000, name="Raspios.IMG"))
    descriptor = _extract(handle, FileSelection("/data/Raspios.IMG"))

    assert descriptor.path == "/data/Raspios.IMG"
    assert descriptor.source_kind is SourceKind.FILE
    assert descriptor.size == 1000
    assert descriptor.extension == "img"
    assert descriptor.device_info is None
    assert descriptor.display_name == "Raspios.IMG"
    assert descriptor.has_partition_table is True
    assert descriptor.partition_table_type == "mbr"
    assert len(descriptor.partitions) == 1
    assert handle.calls[:2] == ["open", "get_inner_source"]


def test_inner_source_metadata_is_published(make_handle) -> None:
    inner = make_handle(
        metadata=SourceMetadata(size=4000, compressed_size=1000, is_size_estimated=True, name="os.img"),
        table=None,
    )
    outer = make_handle(metadata=SourceMetadata(size=1000, name="os.img.xz"), inner=inner)

    descriptor = _extract(outer, FileSelection("/data/os.img.xz"))

    # path and extension come from the raw selection, size from the payload
    assert descriptor.path == "/data/os.img.xz"
    assert descriptor.extension == "xz"
    assert descriptor.size == 4000
    assert descriptor.compressed_size == 1000
    assert descriptor.is_size_estimated is True
    assert descriptor.display_name == "os.img"
    assert descriptor.has_partition_table is False
    assert descriptor.partitions == ()
    assert "get_metadata" not in outer.calls
    assert inner.closed
    assert not outer.closed


def test_url_descriptor_has_no_extension(make_handle) -> None:
    handle = make_handle(metadata=SourceMetadata(size=10, name=None))
    descriptor = _extract(handle, UrlSelection("https://example.com/images/os.img"))
    assert descriptor.extension is None
    assert descriptor.display_name == "os.img"


def test_device_descriptor_skips_unwrapping(make_handle) -> None:
    drive = DeviceDescriptor(device="/dev/sdb", description="SanDisk Cruzer", size=16 * 1024**3)
    handle = make_handle(metadata=SourceMetadata(size=16 * 1024**3, name="SanDisk Cruzer"))

    descriptor = _extract(handle, DeviceSelection(drive))

    assert descriptor.extension is None
    assert descriptor.device_info == drive
    assert descriptor.path == "/dev/sdb"
    assert descriptor.display_name == "SanDisk Cruzer"
    assert "get_inner_source" not in handle.calls


def test_open_failure_is_source_open_error(make_handle) -> None:
    handle = make_handle(open_error=FileNotFoundError(2, "No such file or directory"))
    with pytest.raises(SourceOpenError) as info:
        _extract(handle, FileSelection("/nope.img"))
    assert info.value.context["source_path"] == "/nope.img"


def test_metadata_failure_is_metadata_error(make_handle) -> None:
    handle = make_handle(metadata_error=EOFError("truncated stream"))
    with pytest.raises(MetadataError) as info:
        _extract(handle, FileSelection("/data/bad.img"))
    assert info.value.context["backend_message"] == "truncated stream"


def test_inner_source_closed_on_failure(make_handle) -> None:
    inner = make_handle(metadata_error=OSError("read error"))
    outer = make_handle(inner=inner)
    with pytest.raises(MetadataError):
        _extract(outer, FileSelection("/data/os.img.gz"))
    assert inner.closed
