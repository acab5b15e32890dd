"""MBR / GPT partition-table probe.

Works on the first sectors of a source (LBA 0-33), so every backend can share
it regardless of how bytes are fetched:

  * GPT: protective MBR entry of type 0xEE plus an "EFI PART" header at LBA 1
  * MBR: 0x55AA boot signature and at least one non-empty primary entry

Anything else (bare filesystem images, ISO 9660 without hybrid MBR, random
data) is reported as "no partition table" rather than an error.
"""

from __future__ import annotations

import struct
import uuid
from typing import Optional

from flashsource.domain.model import PartitionEntry, PartitionTable

__all__ = ["PROBE_SIZE", "SECTOR_SIZE", "read_partition_table"]

SECTOR_SIZE = 512
PROBE_SIZE = 34 * SECTOR_SIZE

_MBR_SIGNATURE = b"\x55\xAA"
_MBR_TABLE_OFFSET = 446
_MBR_ENTRY_SIZE = 16
_GPT_PROTECTIVE_TYPE = 0xEE
_GPT_SIGNATURE = b"EFI PART"
_EMPTY_GUID = b"\x00" * 16


def read_partition_table(head: bytes) -> Optional[PartitionTable]:
    """Parse the partition table found in ``head`` (the first sectors).

    Returns None when no table is present.
    """
    if len(head) < SECTOR_SIZE or head[510:512] != _MBR_SIGNATURE:
        return None

    mbr_entries = _parse_mbr_entries(head)
    if mbr_entries is None:
        return None

    if any(entry.type == f"0x{_GPT_PROTECTIVE_TYPE:02x}" for entry in mbr_entries):
        for sector_size in (SECTOR_SIZE, 4096):
            gpt = _parse_gpt(head, sector_size)
            if gpt is not None:
                return gpt if gpt.partitions else None

    if not mbr_entries:
        return None
    return PartitionTable(type="mbr", partitions=tuple(mbr_entries))


def _parse_mbr_entries(boot: bytes) -> Optional[list[PartitionEntry]]:
    entries: list[PartitionEntry] = []
    for i in range(4):
        start = _MBR_TABLE_OFFSET + i * _MBR_ENTRY_SIZE
        status, ptype, lba_start, num_sectors = struct.unpack_from("<B3xB3xII", boot, start)
        # A boot sector of a bare filesystem carries code here, not entries
        if status not in (0x00, 0x80):
            return None
        if ptype == 0 or num_sectors == 0:
            continue
        entries.append(
            PartitionEntry(
                index=i + 1,
                offset=lba_start * SECTOR_SIZE,
                size=num_sectors * SECTOR_SIZE,
                type=f"0x{ptype:02x}",
                bootable=status == 0x80,
            )
        )
    return entries


def _parse_gpt(head: bytes, sector_size: int) -> Optional[PartitionTable]:
    header_at = sector_size
    if len(head) < header_at + 92 or head[header_at:header_at + 8] != _GPT_SIGNATURE:
        return None

    entries_lba, num_entries, entry_size = struct.unpack_from("<QII", head, header_at + 72)
    if entry_size < 128:
        return None

    partitions: list[PartitionEntry] = []
    base = entries_lba * sector_size
    for i in range(num_entries):
        start = base + i * entry_size
        if start + 128 > len(head):
            break
        type_guid = head[start:start + 16]
        if type_guid == _EMPTY_GUID:
            continue
        unique_guid = head[start + 16:start + 32]
        first_lba, last_lba = struct.unpack_from("<QQ", head, start + 32)
        name = head[start + 56:start + 128].decode("utf-16-le", errors="ignore").rstrip("\x00")
        partitions.append(
            PartitionEntry(
                index=i + 1,
                offset=first_lba * sector_size,
                size=(last_lba - first_lba + 1) * sector_size,
                type=str(uuid.UUID(bytes_le=type_guid)).upper(),
                name=name,
                guid=str(uuid.UUID(bytes_le=unique_guid)).upper(),
            )
        )
    return PartitionTable(type="gpt", partitions=tuple(partitions))
