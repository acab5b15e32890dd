"""Metadata extractor: open a handle and build the SourceDescriptor."""

from __future__ import annotations

import structlog

from flashsource.domain.exceptions import FlashSourceError, MetadataError, SourceOpenError
from flashsource.domain.model import (
    RawSelection,
    SourceDescriptor,
    SourceKind,
    basename,
)
from flashsource.domain.protocols import BackendHandle
from flashsource.formats import file_extension

__all__ = ["MetadataExtractor"]

logger = structlog.get_logger(__name__)


class MetadataExtractor:
    """Read size and partition table from an opened backend.

    File and URL handles are unwrapped to their inner source first, so a
    compressed or zipped image is described by its payload. Block devices are
    read directly.
    """

    async def extract(self, handle: BackendHandle, selection: RawSelection) -> SourceDescriptor:
        source_path = selection.source_path
        try:
            await handle.open()
        except FlashSourceError:
            raise
        except Exception as exc:
            raise SourceOpenError.from_exception(source_path, exc) from exc

        inner: BackendHandle = handle
        try:
            if selection.kind is not SourceKind.DEVICE:
                inner = await handle.get_inner_source()
            metadata = await inner.get_metadata()
            table = await inner.get_partition_table()
        except FlashSourceError:
            raise
        except Exception as exc:
            raise MetadataError.from_exception(source_path, exc) from exc
        finally:
            if inner is not handle:
                await _close_quietly(inner)

        if selection.kind is SourceKind.DEVICE:
            display_name = selection.drive.description or metadata.name or selection.drive.device
        else:
            display_name = metadata.name or basename(source_path)

        descriptor = SourceDescriptor(
            path=source_path,
            source_kind=selection.kind,
            size=metadata.size,
            has_partition_table=table is not None,
            partitions=table.partitions if table is not None else (),
            extension=file_extension(selection.path) if selection.kind is SourceKind.FILE else None,
            device_info=selection.drive if selection.kind is SourceKind.DEVICE else None,
            display_name=display_name or None,
            compressed_size=metadata.compressed_size,
            is_size_estimated=metadata.is_size_estimated,
            partition_table_type=table.type if table is not None else None,
        )
        logger.debug(
            "Extracted metadata",
            path=source_path,
            size=descriptor.size,
            partition_table=descriptor.partition_table_type,
        )
        return descriptor


async def _close_quietly(handle: BackendHandle) -> None:
    try:
        await handle.close()
    except Exception as exc:
        logger.debug("Ignoring error while closing source", error=str(exc))
