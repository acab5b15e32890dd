"""Container sources: compressed streams and zip archives.

These wrap a parent source (file or HTTP) and expose the payload inside it,
so that size and partition table describe the image that will actually be
written rather than its container.
"""

from __future__ import annotations

import bz2
import gzip
import logging
import lzma
import struct
import zipfile
from typing import BinaryIO

from flashsource.domain.model import SourceMetadata, basename
from flashsource.formats import COMPRESSED_EXTENSIONS, IMAGE_EXTENSIONS, detect_container, file_extension
from flashsource.sources.base import SourceBase

__all__ = ["CompressedSource", "ZipSource", "unwrap_container"]

logger = logging.getLogger(__name__)


def _strip_compressed_extension(name: str | None) -> str | None:
    if not name:
        return name
    ext = file_extension(name)
    if ext in COMPRESSED_EXTENSIONS:
        return name[: -(len(ext) + 1)]
    return name


class CompressedSource(SourceBase):
    """Streaming decompression of a gzip, bzip2 or xz payload.

    Reads behind the current position rewind the decompressor, so random
    access is possible but only forward reads are cheap.
    """

    def __init__(self, parent: SourceBase, codec: str) -> None:
        super().__init__()
        if codec not in ("gzip", "bzip2", "xz"):
            raise ValueError(f"Unsupported compression: {codec}")
        self.parent = parent
        self.codec = codec
        self._raw: BinaryIO | None = None
        self._stream: BinaryIO | None = None
        self._isize: int | None = None

    def _open(self) -> None:
        self._raw = self.parent.open_stream()
        if self.codec == "gzip":
            self._isize = self._read_gzip_isize(self._raw)
            self._stream = gzip.GzipFile(fileobj=self._raw, mode="rb")
        elif self.codec == "bzip2":
            self._stream = bz2.BZ2File(self._raw, mode="rb")
        else:
            self._stream = lzma.LZMAFile(self._raw, mode="rb")

    @staticmethod
    def _read_gzip_isize(raw: BinaryIO) -> int | None:
        # ISIZE trailer is the uncompressed size modulo 2**32
        try:
            raw.seek(-4, 2)
            (isize,) = struct.unpack("<I", raw.read(4))
        except (OSError, struct.error):
            return None
        finally:
            raw.seek(0)
        return isize

    def _close(self) -> None:
        for stream in (self._stream, self._raw):
            if stream is not None:
                stream.close()
        self._stream = None
        self._raw = None

    def _read(self, offset: int, length: int) -> bytes:
        assert self._stream is not None
        self._stream.seek(offset)
        return self._stream.read(length)

    def _get_metadata(self) -> SourceMetadata:
        parent = self.parent._get_metadata()
        return SourceMetadata(
            size=self._isize,
            compressed_size=parent.size,
            is_size_estimated=self._isize is not None,
            name=_strip_compressed_extension(parent.name),
            url=parent.url,
            format=self.codec,
        )


class ZipSource(SourceBase):
    """The largest image file inside a zip archive."""

    def __init__(self, parent: SourceBase) -> None:
        super().__init__()
        self.parent = parent
        self._raw: BinaryIO | None = None
        self._archive: zipfile.ZipFile | None = None
        self._entry: zipfile.ZipInfo | None = None
        self._member: BinaryIO | None = None

    def _open(self) -> None:
        self._raw = self.parent.open_stream()
        self._archive = zipfile.ZipFile(self._raw)
        self._entry = self._select_entry(self._archive)
        self._member = self._archive.open(self._entry)

    @staticmethod
    def _select_entry(archive: zipfile.ZipFile) -> zipfile.ZipInfo:
        candidates = [
            info
            for info in archive.infolist()
            if not info.is_dir() and file_extension(info.filename) in IMAGE_EXTENSIONS
        ]
        if not candidates:
            raise ValueError("No image file found in archive")
        return max(candidates, key=lambda info: info.file_size)

    def _close(self) -> None:
        for closable in (self._member, self._archive, self._raw):
            if closable is not None:
                closable.close()
        self._member = None
        self._archive = None
        self._raw = None

    def _read(self, offset: int, length: int) -> bytes:
        assert self._member is not None
        self._member.seek(offset)
        return self._member.read(length)

    def _get_metadata(self) -> SourceMetadata:
        assert self._entry is not None
        parent = self.parent._get_metadata()
        return SourceMetadata(
            size=self._entry.file_size,
            compressed_size=self._entry.compress_size,
            name=basename(self._entry.filename),
            url=parent.url,
            format="zip",
        )


async def unwrap_container(source: SourceBase, name: str | None) -> SourceBase:
    """Return the payload source inside ``source``, or ``source`` itself."""
    head = await source.read(0, 8)
    codec = detect_container(name, head)
    if codec is None:
        return source
    logger.debug("Unwrapping %s container of %s", codec, name)
    inner: SourceBase = ZipSource(source) if codec == "zip" else CompressedSource(source, codec)
    await inner.open()
    return inner

