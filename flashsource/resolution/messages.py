"""User-facing titles and descriptions for warnings and errors."""

from __future__ import annotations

__all__ = [
    "MISSING_PARTITION_TABLE_TITLE",
    "OPEN_SOURCE_TITLE",
    "UNSUPPORTED_PROTOCOL_TITLE",
    "WINDOWS_IMAGE_TITLE",
    "missing_partition_table_warning",
    "open_source_error",
    "unsupported_protocol_error",
    "windows_image_warning",
]

OPEN_SOURCE_TITLE = "Error opening source"
UNSUPPORTED_PROTOCOL_TITLE = "Unsupported protocol"
WINDOWS_IMAGE_TITLE = "Possible Windows image detected"
MISSING_PARTITION_TABLE_TITLE = "Missing partition table"


def windows_image_warning() -> str:
    return (
        "It looks like you are trying to burn a Windows image.\n\n"
        "Unlike other images, Windows images require special processing to be made bootable. "
        "We suggest you use a tool specially designed for this purpose, such as "
        "Rufus (Windows), WoeUSB (Linux), or Boot Camp Assistant (macOS)."
    )


def missing_partition_table_warning() -> str:
    return (
        "It looks like this is not a bootable image.\n\n"
        "The image does not appear to contain a partition table, "
        "and might not be recognized or bootable by your device."
    )


def open_source_error(source_name: str, error_message: str) -> str:
    return f"Something went wrong while opening {source_name}\n\nError: {error_message}"


def unsupported_protocol_error() -> str:
    return "Only http:// and https:// URLs are supported."
