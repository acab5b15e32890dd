"""FileSource - an image file on a local or mounted filesystem."""

from __future__ import annotations

import os
from pathlib import Path
from typing import BinaryIO

from flashsource.domain.model import SourceMetadata, basename
from flashsource.sources.base import SourceBase
from flashsource.sources.compressed import unwrap_container


class FileSource(SourceBase):
    """Read an image file from disk.

    Construction does not touch the filesystem; a missing or unreadable path
    surfaces as the native OSError when the handle is opened.
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = str(path)
        self._fh: BinaryIO | None = None

    @property
    def name(self) -> str:
        return basename(self.path)

    def _open(self) -> None:
        if os.path.isdir(self.path):
            raise IsADirectoryError(f"Is a directory: '{self.path}'")
        self._fh = open(self.path, "rb")

    def _close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def _read(self, offset: int, length: int) -> bytes:
        assert self._fh is not None
        self._fh.seek(offset)
        return self._fh.read(length)

    def _get_metadata(self) -> SourceMetadata:
        return SourceMetadata(size=os.path.getsize(self.path), name=self.name)

    def open_stream(self) -> BinaryIO:
        return open(self.path, "rb")

    async def get_inner_source(self) -> SourceBase:
        return await unwrap_container(self, self.name)

    def __repr__(self) -> str:
        return f"FileSource({self.path!r})"
