"""Supported image formats and filename heuristics."""

from __future__ import annotations

import re
from typing import Iterable, Optional

from flashsource.domain.model import basename

__all__ = [
    "ARCHIVE_EXTENSIONS",
    "COMPRESSED_EXTENSIONS",
    "DEFAULT_WINDOWS_IMAGE_PATTERNS",
    "IMAGE_EXTENSIONS",
    "detect_container",
    "file_extension",
    "is_url",
    "looks_like_windows_image",
]

# extension -> codec
COMPRESSED_EXTENSIONS: dict[str, str] = {
    "gz": "gzip",
    "bz2": "bzip2",
    "xz": "xz",
}

ARCHIVE_EXTENSIONS: dict[str, str] = {
    "zip": "zip",
}

IMAGE_EXTENSIONS = frozenset(
    {
        "img",
        "iso",
        "bin",
        "dsk",
        "hddimg",
        "raw",
        "dmg",
        "sdcard",
        "rpi-sdimg",
        "wic",
        "etch",
    }
)

_MAGIC: tuple[tuple[bytes, str], ...] = (
    (b"\x1f\x8b", "gzip"),
    (b"BZh", "bzip2"),
    (b"\xfd7zXZ\x00", "xz"),
    (b"PK\x03\x04", "zip"),
)

DEFAULT_WINDOWS_IMAGE_PATTERNS: tuple[str, ...] = ("windows", "win7", "win8", "win10", "winxp")


def is_url(value: str) -> bool:
    return value.startswith("https://") or value.startswith("http://")


def file_extension(path: str) -> Optional[str]:
    """Lower-cased text after the last dot of the final path component.

    Returns None when the name has no dot or ends with one.
    """
    name = basename(path)
    if "." not in name:
        return None
    ext = name.rsplit(".", 1)[1].lower()
    return ext or None


def detect_container(name: Optional[str], head: bytes) -> Optional[str]:
    """Identify a compressed or archived payload by extension, then magic bytes.

    Returns the codec name ("gzip", "bzip2", "xz", "zip") or None for a raw image.
    """
    ext = file_extension(name) if name else None
    if ext in COMPRESSED_EXTENSIONS:
        return COMPRESSED_EXTENSIONS[ext]
    if ext in ARCHIVE_EXTENSIONS:
        return ARCHIVE_EXTENSIONS[ext]
    if ext in IMAGE_EXTENSIONS:
        return None
    for magic, codec in _MAGIC:
        if head.startswith(magic):
            return codec
    return None


def looks_like_windows_image(
    image_path: str,
    patterns: Iterable[str] = DEFAULT_WINDOWS_IMAGE_PATTERNS,
) -> bool:
    """Whether the file name suggests a Windows installer image.

    Blank patterns are ignored; with none left the check is disabled.
    """
    fragments = [re.escape(p) for p in patterns if p.strip()]
    if not fragments:
        return False
    regex = re.compile("|".join(fragments), re.IGNORECASE)
    return bool(regex.search(basename(image_path)))
