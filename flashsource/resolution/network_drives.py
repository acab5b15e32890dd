"""Replace mapped network drive letters with UNC paths on Windows.

Block-level readers cannot follow a drive letter mapped with ``net use``;
``Z:\\images\\os.img`` has to become ``\\\\server\\share\\images\\os.img``.
"""

from __future__ import annotations

import asyncio
import re
import subprocess
import sys

import structlog

from flashsource.domain.exceptions import DependencyError

__all__ = ["get_network_drives", "replace_windows_network_drive_letter"]

logger = structlog.get_logger(__name__)

_DRIVE_LETTER = re.compile(r"^([A-Za-z]):")

# Win32_LogicalDisk.DriveType 4 == network drive
_WMIC_COMMAND = ["wmic", "logicaldisk", "where", "DriveType=4", "get", "DeviceID,ProviderName"]


def _parse_wmic_output(output: str) -> dict[str, str]:
    drives: dict[str, str] = {}
    for line in output.splitlines()[1:]:
        parts = line.strip().split(None, 1)
        if len(parts) == 2 and _DRIVE_LETTER.match(parts[0]):
            drives[parts[0][0].upper()] = parts[1].strip()
    return drives


def get_network_drives() -> dict[str, str]:
    """Map upper-case drive letters to the UNC path they point at."""
    try:
        result = subprocess.run(_WMIC_COMMAND, capture_output=True, text=True, timeout=10, check=True)
    except FileNotFoundError as exc:
        raise DependencyError("wmic is required to resolve network drives", cause=exc) from exc
    return _parse_wmic_output(result.stdout)


async def replace_windows_network_drive_letter(path: str, *, platform: str | None = None) -> str:
    """Return ``path`` with a network drive letter replaced by its UNC root.

    Paths on other platforms, or on local drives, are returned unchanged.
    Lookup failures propagate so the caller can decide how to report them.
    """
    if (platform or sys.platform) != "win32":
        return path
    match = _DRIVE_LETTER.match(path)
    if match is None:
        return path
    drives = await asyncio.to_thread(get_network_drives)
    unc_root = drives.get(match.group(1).upper())
    if unc_root is None:
        return path
    replaced = unc_root + path[2:]
    logger.debug("Replaced network drive letter", original=path, replaced=replaced)
    return replaced
