"""Source factory: turn a raw selection into an unopened backend handle."""

from __future__ import annotations

from typing import Awaitable, Callable

import requests
import structlog

from flashsource.domain.exceptions import SourceOpenError
from flashsource.domain.model import RawSelection, SourceKind
from flashsource.resolution.network_drives import replace_windows_network_drive_letter
from flashsource.sources import BlockDeviceSource, FileSource, HttpSource, SourceBase
from flashsource.sources.http import DEFAULT_TIMEOUT_S

__all__ = ["PathFixup", "SourceFactory"]

logger = structlog.get_logger(__name__)

PathFixup = Callable[[str], Awaitable[str]]


class SourceFactory:
    """Build the backend handle matching a selection's kind.

    File and URL strings first go through a platform path fixup (network
    drive letters on Windows). A failing fixup is logged and the original
    string is used. No I/O happens beyond constructing the handle.
    """

    def __init__(
        self,
        *,
        http_timeout: float = DEFAULT_TIMEOUT_S,
        direct_io: bool = True,
        session: requests.Session | None = None,
        path_fixup: PathFixup = replace_windows_network_drive_letter,
    ) -> None:
        self.http_timeout = http_timeout
        self.direct_io = direct_io
        self.session = session
        self.path_fixup = path_fixup

    async def _fix_path(self, raw: str) -> str:
        try:
            return await self.path_fixup(raw)
        except Exception as exc:
            logger.warning("Path fixup failed; using original path", path=raw, error=str(exc))
            return raw

    async def create_source(self, selection: RawSelection) -> SourceBase:
        source_path = selection.source_path
        try:
            if selection.kind is SourceKind.FILE:
                return FileSource(await self._fix_path(selection.path))
            if selection.kind is SourceKind.URL:
                return HttpSource(
                    await self._fix_path(selection.url),
                    session=self.session,
                    timeout=self.http_timeout,
                )
            if selection.kind is SourceKind.DEVICE:
                return BlockDeviceSource(selection.drive, write=False, direct=self.direct_io)
        except (OSError, ValueError) as exc:
            raise SourceOpenError.from_exception(source_path, exc) from exc
        raise TypeError(f"Unknown selection kind: {selection.kind!r}")
