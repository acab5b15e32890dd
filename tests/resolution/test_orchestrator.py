"""Resolution orchestrator: state machine, commit, cleanup and recents."""

from __future__ import annotations

import asyncio
import gzip
import struct

import pytest

from flashsource.domain.exceptions import MetadataError, SourceOpenError, UnsupportedProtocolError
from flashsource.domain.model import (
    AnomalyCode,
    DeviceDescriptor,
    DeviceSelection,
    FileSelection,
    ResolutionState,
    SourceKind,
    SourceMetadata,
    UrlSelection,
)
from flashsource.resolution import RecentUrlStore, SourceFactory, SourceResolver
from flashsource.storage import InMemorySelectionStore, MemoryStorage


class Recorder:
    def __init__(self) -> None:
        self.items: list = []

    def __call__(self, item) -> None:
        self.items.append(item)


def _resolver(factory, **kwargs):
    store = InMemorySelectionStore()
    recent = RecentUrlStore(MemoryStorage())
    errors = Recorder()
    resolver = SourceResolver(store, recent, factory=factory, error_presenter=errors, **kwargs)
    return resolver, store, recent, errors


def test_missing_partition_table_still_commits(make_factory, make_handle) -> None:
    handle = make_handle(table=None)
    resolver, store, _, errors = _resolver(make_factory(handle))

    outcome = asyncio.run(resolver.resolve(FileSelection("/data/disk.img")))

    assert outcome.state is ResolutionState.COMMITTED
    assert [a.code for a in outcome.anomalies] == [AnomalyCode.MISSING_PARTITION_TABLE]
    assert outcome.confirmed is True
    assert store.get_source() == outcome.descriptor
    assert outcome.descriptor.has_partition_table is False
    assert errors.items == []
    assert handle.closed


def test_history_follows_state_machine(make_factory) -> None:
    resolver, *_ = _resolver(make_factory())
    outcome = asyncio.run(resolver.resolve(FileSelection("/data/disk.img")))
    assert outcome.history == (
        ResolutionState.IDLE,
        ResolutionState.OPENING,
        ResolutionState.EXTRACTING_METADATA,
        ResolutionState.CLASSIFYING,
        ResolutionState.COMMITTED,
    )


def test_ftp_url_fails_without_commit_or_persistence(make_factory, make_handle) -> None:
    handle = make_handle()
    resolver, store, recent, errors = _resolver(make_factory(handle))

    outcome = asyncio.run(resolver.resolve(UrlSelection("ftp://example.com/image.img")))

    assert outcome.state is ResolutionState.FAILED
    assert outcome.anomalies[0].code is AnomalyCode.UNSUPPORTED_PROTOCOL
    assert isinstance(outcome.error, UnsupportedProtocolError)
    assert not store.has_source()
    assert recent.load() == []
    assert handle.closed
    (record,) = errors.items
    assert record.title == "Unsupported protocol"
    assert record.source_path == "ftp://example.com/image.img"
    assert record.description == "Only http:// and https:// URLs are supported."


def test_fatal_anomaly_is_not_confirmed(make_factory) -> None:
    asked = Recorder()

    def confirm(anomaly):
        asked(anomaly)
        return True

    resolver, *_ = _resolver(make_factory())
    asyncio.run(resolver.resolve(UrlSelection("ftp://example.com/image.img"), confirm=confirm))
    assert asked.items == []


def test_windows_image_abort_leaves_store_empty(make_factory, make_handle) -> None:
    resolver, store, _, _ = _resolver(make_factory(make_handle()))
    asked = Recorder()

    def decline(anomaly) -> bool:
        asked(anomaly)
        return False

    outcome = asyncio.run(resolver.resolve(FileSelection("/data/win10.iso"), confirm=decline))

    assert [a.code for a in outcome.anomalies] == [AnomalyCode.LOOKS_LIKE_WINDOWS_IMAGE]
    assert [a.code for a in asked.items] == [AnomalyCode.LOOKS_LIKE_WINDOWS_IMAGE]
    assert outcome.state is ResolutionState.COMMITTED
    assert outcome.confirmed is False
    assert not store.has_source()


def test_failing_confirmation_deselects_and_propagates(make_factory, make_handle) -> None:
    handle = make_handle(table=None)
    resolver, store, _, errors = _resolver(make_factory(handle))

    def broken(anomaly) -> bool:
        raise RuntimeError("dialog crashed")

    with pytest.raises(RuntimeError, match="dialog crashed"):
        asyncio.run(resolver.resolve(FileSelection("/data/disk.img"), confirm=broken))

    assert store.get_source() is None
    assert handle.closed
    assert errors.items == []


def test_failing_async_confirmation_does_not_record_url(make_factory, make_handle) -> None:
    resolver, store, recent, _ = _resolver(make_factory(make_handle(table=None)))

    async def broken(anomaly) -> bool:
        await asyncio.sleep(0)
        raise RuntimeError("dialog crashed")

    with pytest.raises(RuntimeError):
        asyncio.run(resolver.resolve(UrlSelection("https://example.com/disk.img"), confirm=broken))

    assert not store.has_source()
    assert recent.load() == []


def test_async_confirmation_is_awaited(make_factory, make_handle) -> None:
    resolver, store, _, _ = _resolver(make_factory(make_handle(table=None)))

    async def accept(anomaly) -> bool:
        await asyncio.sleep(0)
        return True

    outcome = asyncio.run(resolver.resolve(FileSelection("/data/disk.img"), confirm=accept))
    assert outcome.confirmed is True
    assert store.has_source()


def test_anomaly_listener_notified(make_factory, make_handle) -> None:
    seen = Recorder()
    resolver, *_ = _resolver(make_factory(make_handle(table=None)), on_anomaly=seen)
    asyncio.run(resolver.resolve(FileSelection("/data/windows-10.img")))
    assert [a.code for a in seen.items] == [
        AnomalyCode.LOOKS_LIKE_WINDOWS_IMAGE,
        AnomalyCode.MISSING_PARTITION_TABLE,
    ]


def test_device_descriptor(make_factory, make_handle) -> None:
    drive = DeviceDescriptor(device="/dev/sdb", description="Kingston DataTraveler", size=32 * 1024**3)
    resolver, store, _, _ = _resolver(make_factory(make_handle(metadata=SourceMetadata(size=drive.size))))

    outcome = asyncio.run(resolver.resolve(DeviceSelection(drive)))

    assert outcome.ok
    assert outcome.descriptor.source_kind is SourceKind.DEVICE
    assert outcome.descriptor.extension is None
    assert outcome.descriptor.device_info == drive
    assert store.get_source().path == "/dev/sdb"


def test_factory_failure(make_factory) -> None:
    error = SourceOpenError.from_exception("/data/missing.img", FileNotFoundError(2, "No such file or directory"))
    resolver, store, _, errors = _resolver(make_factory(error=error))

    outcome = asyncio.run(resolver.resolve(FileSelection("/data/missing.img")))

    assert outcome.state is ResolutionState.FAILED
    assert outcome.error is error
    assert outcome.descriptor is None
    assert outcome.history[-2:] == (ResolutionState.OPENING, ResolutionState.FAILED)
    assert not store.has_source()
    (record,) = errors.items
    assert record.title == "Error opening source"
    assert record.source_path == "/data/missing.img"
    assert record.description.startswith("Something went wrong while opening /data/missing.img")
    assert "No such file or directory" in record.description


def test_nonexistent_file_with_real_backend(tmp_path) -> None:
    async def identity(path: str) -> str:
        return path

    resolver, store, _, errors = _resolver(SourceFactory(path_fixup=identity))
    missing = str(tmp_path / "missing.img")

    outcome = asyncio.run(resolver.resolve(FileSelection(missing)))

    assert outcome.state is ResolutionState.FAILED
    assert isinstance(outcome.error, SourceOpenError)
    assert not store.has_source()
    assert errors.items[0].source_path == missing


def test_metadata_failure_releases_handle(make_factory, make_handle) -> None:
    handle = make_handle(metadata_error=OSError("I/O error"))
    resolver, store, _, errors = _resolver(make_factory(handle))

    outcome = asyncio.run(resolver.resolve(FileSelection("/data/disk.img")))

    assert outcome.state is ResolutionState.FAILED
    assert isinstance(outcome.error, MetadataError)
    assert handle.closed
    assert not store.has_source()
    assert "I/O error" in errors.items[0].description


def test_close_errors_are_swallowed(make_factory, make_handle) -> None:
    handle = make_handle(close_error=OSError("close failed"))
    resolver, store, _, errors = _resolver(make_factory(handle))

    outcome = asyncio.run(resolver.resolve(FileSelection("/data/disk.img")))

    assert outcome.ok
    assert store.has_source()
    assert errors.items == []


def test_close_error_does_not_mask_primary_failure(make_factory, make_handle) -> None:
    handle = make_handle(open_error=PermissionError(13, "Permission denied"), close_error=OSError("close failed"))
    resolver, _, _, errors = _resolver(make_factory(handle))

    outcome = asyncio.run(resolver.resolve(FileSelection("/dev/sda")))

    assert isinstance(outcome.error, SourceOpenError)
    assert "Permission denied" in errors.items[0].description


def test_empty_selection_aborts_without_opening(make_factory) -> None:
    factory = make_factory()
    resolver, store, _, errors = _resolver(factory)

    outcome = asyncio.run(resolver.resolve(FileSelection("")))

    assert outcome.state is ResolutionState.ABORTED
    assert factory.selections == []
    assert errors.items == []
    assert not store.has_source()


def test_recent_urls_keep_most_recent_confirmed(make_factory, make_handle) -> None:
    resolver, _, recent, _ = _resolver(make_factory(make_handle()))
    sequence = [
        "https://example.com/a.img",
        "https://example.com/b.img",
        "https://example.com/a.img",
        "https://example.com/c.img",
        "https://example.com/a.img",
    ]

    for url in sequence:
        assert asyncio.run(resolver.resolve(UrlSelection(url))).ok

    assert [entry.url for entry in recent.load()] == [
        "https://example.com/b.img",
        "https://example.com/c.img",
        "https://example.com/a.img",
    ]


def test_declined_url_is_not_remembered(make_factory, make_handle) -> None:
    resolver, _, recent, _ = _resolver(make_factory(make_handle(table=None)))
    outcome = asyncio.run(
        resolver.resolve(UrlSelection("https://example.com/raw.bin"), confirm=lambda anomaly: False)
    )
    assert outcome.confirmed is False
    assert recent.load() == []


def test_reselect_clears_store(make_factory) -> None:
    resolver, store, _, _ = _resolver(make_factory())
    asyncio.run(resolver.resolve(FileSelection("/data/disk.img")))
    assert store.has_source()

    resolver.reselect()

    assert not store.has_source()


def test_concurrent_resolutions_last_writer_wins(make_factory) -> None:
    resolver, store, _, _ = _resolver(make_factory())

    async def run():
        return await asyncio.gather(
            resolver.resolve(FileSelection("/data/first.img")),
            resolver.resolve(FileSelection("/data/second.img")),
        )

    first, second = asyncio.run(run())

    assert first.ok and second.ok
    assert store.get_source().path in {"/data/first.img", "/data/second.img"}


def test_end_to_end_gzip_file(tmp_path) -> None:
    image = bytearray(64 * 1024)
    struct.pack_into("<B3xB3xII", image, 446, 0x80, 0x83, 8, 64)
    image[510:512] = b"\x55\xAA"
    path = tmp_path / "raspios.img.gz"
    path.write_bytes(gzip.compress(bytes(image)))

    async def identity(p: str) -> str:
        return p

    resolver, store, _, errors = _resolver(SourceFactory(path_fixup=identity))
    outcome = asyncio.run(resolver.resolve(FileSelection(str(path))))

    assert outcome.ok, errors.items
    descriptor = store.get_source()
    assert descriptor.path == str(path)
    assert descriptor.extension == "gz"
    assert descriptor.size == len(image)
    assert descriptor.is_size_estimated is True
    assert descriptor.display_name == "raspios.img"
    assert descriptor.partition_table_type == "mbr"
    assert outcome.anomalies == ()
