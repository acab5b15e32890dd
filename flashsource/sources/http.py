"""HttpSource - an image served over HTTP(S), read with range requests."""

from __future__ import annotations

import io
import logging
from typing import BinaryIO
from urllib.parse import unquote, urlsplit

import requests

from flashsource.domain.model import SourceMetadata
from flashsource.sources.base import SourceBase
from flashsource.sources.compressed import unwrap_container

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 30.0


class HttpSource(SourceBase):
    """Read a remote image without downloading it.

    ``open()`` issues a HEAD request (falling back to a streamed GET when the
    server refuses HEAD) to learn the final URL and the content length. Reads
    use ``Range`` headers; servers that ignore ranges are read from the start.
    """

    def __init__(
        self,
        url: str,
        *,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        super().__init__()
        self.url = url
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None
        self._final_url: str = url
        self._size: int | None = None
        self._accepts_ranges = False

    @property
    def name(self) -> str:
        path = urlsplit(self._final_url).path
        return unquote(path.rstrip("/").split("/")[-1])

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def _open(self) -> None:
        response = self.session.head(self.url, allow_redirects=True, timeout=self.timeout)
        if response.status_code in (405, 501):
            response = self.session.get(self.url, stream=True, timeout=self.timeout)
            response.close()
        response.raise_for_status()
        self._final_url = response.url or self.url
        length = response.headers.get("Content-Length")
        self._size = int(length) if length and length.isdigit() else None
        self._accepts_ranges = response.headers.get("Accept-Ranges", "").lower() == "bytes"
        logger.debug("Opened %s (size=%s, ranges=%s)", self._final_url, self._size, self._accepts_ranges)

    def _close(self) -> None:
        if self._owns_session and self._session is not None:
            self._session.close()
            self._session = None

    def _read(self, offset: int, length: int) -> bytes:
        if length <= 0:
            return b""
        if self._size is not None:
            if offset >= self._size:
                return b""
            length = min(length, self._size - offset)
        headers = {"Range": f"bytes={offset}-{offset + length - 1}"}
        with self.session.get(self._final_url, headers=headers, stream=True, timeout=self.timeout) as response:
            response.raise_for_status()
            if response.status_code == 206:
                return response.content[:length]
            # Range ignored: skip up to offset in the full body
            buffer = bytearray()
            for chunk in response.iter_content(chunk_size=64 * 1024):
                buffer.extend(chunk)
                if len(buffer) >= offset + length:
                    break
            return bytes(buffer[offset:offset + length])

    def _get_metadata(self) -> SourceMetadata:
        return SourceMetadata(size=self._size, name=self.name or None, url=self._final_url)

    def open_stream(self) -> BinaryIO:
        return io.BufferedReader(_HttpRangeReader(self), buffer_size=1024 * 1024)

    async def get_inner_source(self) -> SourceBase:
        return await unwrap_container(self, self.name)

    def __repr__(self) -> str:
        return f"HttpSource({self.url!r})"


class _HttpRangeReader(io.RawIOBase):
    """Seekable raw stream over an opened HttpSource."""

    def __init__(self, source: HttpSource) -> None:
        self._source = source
        self._pos = 0

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        return self._pos

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        if whence == io.SEEK_SET:
            self._pos = offset
        elif whence == io.SEEK_CUR:
            self._pos += offset
        elif whence == io.SEEK_END:
            if self._source._size is None:
                raise OSError("Remote size unknown; cannot seek from end")
            self._pos = self._source._size + offset
        else:
            raise ValueError(f"Invalid whence: {whence}")
        if self._pos < 0:
            raise OSError("Negative seek position")
        return self._pos

    def readinto(self, buffer) -> int:
        data = self._source._read(self._pos, len(buffer))
        buffer[: len(data)] = data
        self._pos += len(data)
        return len(data)
