"""BlockDeviceSource - a raw drive opened read-only for cloning.

Also provides ``describe_device`` to build a DeviceDescriptor from an OS
device node when no drive scanner is available (CLI use).
"""

from __future__ import annotations

import logging
import mmap
import os
import stat
import sys
from pathlib import Path

from flashsource.domain.model import DeviceDescriptor, SourceMetadata
from flashsource.sources.base import SourceBase
logger = logging.getLogger(__name__)

# Covers 512-byte and 4Kn native sectors, and matches the page size of mmap buffers
DIRECT_IO_ALIGNMENT = 4096


class BlockDeviceSource(SourceBase):
    """Read a whole drive through its device node.

    With ``direct=True`` the node is opened with O_DIRECT where the platform
    supports it, which requires offsets, lengths and buffers aligned to the
    logical sector size. Reads are widened to ``DIRECT_IO_ALIGNMENT``
    boundaries into page-aligned mmap buffers and trimmed afterwards.
    """

    def __init__(self, drive: DeviceDescriptor, *, write: bool = False, direct: bool = True) -> None:
        super().__init__()
        if write:
            raise ValueError("BlockDeviceSource only supports read-only access")
        self.drive = drive
        self.write = write
        self.direct = direct
        self._fd: int | None = None
        self._size: int | None = drive.size

    @property
    def name(self) -> str:
        return self.drive.description or self.drive.device

    def _open_flags(self) -> int:
        flags = os.O_RDONLY | getattr(os, "O_BINARY", 0)
        if self.direct:
            flags |= getattr(os, "O_DIRECT", 0)
        return flags

    def _open(self) -> None:
        self._fd = os.open(self.drive.device, self._open_flags())
        if self._size is None:
            try:
                self._size = os.lseek(self._fd, 0, os.SEEK_END)
            except OSError:
                logger.debug("Could not determine size of %s", self.drive.device)

    def _close(self) -> None:
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None

    def _read(self, offset: int, length: int) -> bytes:
        assert self._fd is not None
        if length <= 0:
            return b""
        start = offset - offset % DIRECT_IO_ALIGNMENT
        end = offset + length
        end += -end % DIRECT_IO_ALIGNMENT
        span = end - start
        buffer = mmap.mmap(-1, span)
        try:
            if hasattr(os, "preadv"):
                count = os.preadv(self._fd, [buffer], start)
            else:
                os.lseek(self._fd, start, os.SEEK_SET)
                data = os.read(self._fd, span)
                buffer[: len(data)] = data
                count = len(data)
            skip = offset - start
            return bytes(buffer[skip:max(skip, min(count, skip + length))])
        finally:
            buffer.close()

    def _get_metadata(self) -> SourceMetadata:
        return SourceMetadata(size=self._size, name=self.name)

    def __repr__(self) -> str:
        return f"BlockDeviceSource({self.drive.device!r})"


def _read_sysfs(path: Path) -> str | None:
    try:
        return path.read_text().strip()
    except OSError:
        return None


def describe_device(device: str) -> DeviceDescriptor:
    """Build a DeviceDescriptor for ``device`` using what the OS exposes.

    On Linux the sysfs entries under /sys/block provide size, model and the
    removable flag; elsewhere only the node itself is recorded.
    """
    if sys.platform.startswith("linux"):
        st = os.stat(device)
        if not stat.S_ISBLK(st.st_mode):
            raise ValueError(f"{device} is not a block device")
        name = Path(os.path.realpath(device)).name
        sysfs = Path("/sys/class/block") / name
        sectors = _read_sysfs(sysfs / "size")
        model = _read_sysfs(sysfs / "device" / "model") or ""
        vendor = _read_sysfs(sysfs / "device" / "vendor") or ""
        removable = _read_sysfs(sysfs / "removable") == "1"
        return DeviceDescriptor(
            device=device,
            description=" ".join(part for part in (vendor, model) if part),
            # sysfs always counts 512-byte sectors
            size=int(sectors) * 512 if sectors and sectors.isdigit() else None,
            is_removable=removable,
            mountpoints=tuple(_linux_mountpoints(name)),
        )
    return DeviceDescriptor(device=device)


def _linux_mountpoints(name: str) -> list[str]:
    mounts: list[str] = []
    try:
        with open("/proc/mounts", encoding="utf-8") as fh:
            for line in fh:
                parts = line.split()
                if len(parts) >= 2 and Path(parts[0]).name.startswith(name):
                    mounts.append(parts[1])
    except OSError:
        pass
    return mounts
