"""Core data model for source resolution.

Selections arrive as one of three tagged variants (file, URL, device) and
leave the pipeline as a single normalized SourceDescriptor, or as a failed
outcome carrying a classified error.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import PurePosixPath, PureWindowsPath
from typing import TYPE_CHECKING, Any, Union
from urllib.parse import urlsplit

if TYPE_CHECKING:
    from flashsource.domain.error_schema import ErrorRecordDict
    from flashsource.domain.exceptions import FlashSourceError

__all__ = [
    "Anomaly",
    "AnomalyCode",
    "AnomalySeverity",
    "DeviceDescriptor",
    "DeviceSelection",
    "ErrorRecord",
    "FileSelection",
    "PartitionEntry",
    "PartitionTable",
    "RawSelection",
    "RecentUrlEntry",
    "ResolutionOutcome",
    "ResolutionState",
    "SourceDescriptor",
    "SourceKind",
    "SourceMetadata",
    "UrlSelection",
    "basename",
]


class SourceKind(str, Enum):
    FILE = "file"
    URL = "url"
    DEVICE = "device"


def basename(path: str) -> str:
    """Final path component, accepting both POSIX and Windows separators."""
    if "\\" in path:
        return PureWindowsPath(path).name
    return PurePosixPath(path).name


@dataclass(frozen=True)
class DeviceDescriptor:
    """A block device as reported by the drive scanner.

    Attributes:
        device: OS device node (``/dev/sdb``, ``\\\\.\\PhysicalDrive1``)
        description: Human-readable model/vendor string
        size: Capacity in bytes, if known
        is_removable: Removable media (USB stick, SD card)
        is_system: Drive hosts the running system
        mountpoints: Paths where partitions of the drive are mounted
        raw: Scanner-specific extra fields, passed through untouched
    """

    device: str
    description: str = ""
    size: int | None = None
    is_removable: bool = False
    is_system: bool = False
    mountpoints: tuple[str, ...] = ()
    raw: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class FileSelection:
    path: str

    @property
    def kind(self) -> SourceKind:
        return SourceKind.FILE

    @property
    def source_path(self) -> str:
        return self.path


@dataclass(frozen=True)
class UrlSelection:
    url: str

    @property
    def kind(self) -> SourceKind:
        return SourceKind.URL

    @property
    def source_path(self) -> str:
        return self.url


@dataclass(frozen=True)
class DeviceSelection:
    drive: DeviceDescriptor

    @property
    def kind(self) -> SourceKind:
        return SourceKind.DEVICE

    @property
    def source_path(self) -> str:
        return self.drive.device


RawSelection = Union[FileSelection, UrlSelection, DeviceSelection]


@dataclass(frozen=True)
class PartitionEntry:
    """One entry of an MBR or GPT partition table.

    ``type`` is the MBR type byte as ``0x..`` or the GPT type GUID.
    Offsets and sizes are in bytes.
    """

    index: int
    offset: int
    size: int
    type: str
    name: str = ""
    guid: str | None = None
    bootable: bool = False


@dataclass(frozen=True)
class PartitionTable:
    type: str  # "mbr" or "gpt"
    partitions: tuple[PartitionEntry, ...]


@dataclass(frozen=True)
class SourceMetadata:
    """Byte-level metadata reported by a backend handle."""

    size: int | None = None
    compressed_size: int | None = None
    is_size_estimated: bool = False
    name: str | None = None
    url: str | None = None
    format: str | None = None


@dataclass(frozen=True)
class SourceDescriptor:
    """Normalized record describing a resolved source.

    Built once per successful resolution and handed to the selection store;
    never mutated afterwards.

    Attributes:
        path: Canonical path, URL or device node used to re-open the source
        source_kind: Which kind of selection produced this descriptor
        size: Payload size in bytes (inner source when unwrapped)
        has_partition_table: Whether an MBR/GPT table was found
        partitions: Table entries, empty exactly when no table was found
        extension: Lower-cased extension without dot (file sources only)
        device_info: The selected drive (device sources only)
        display_name: Name to show the user
        compressed_size: Size of the container when the payload was unwrapped
        is_size_estimated: Size comes from a container hint, not the payload
        partition_table_type: "mbr" or "gpt" when a table was found
    """

    path: str
    source_kind: SourceKind
    size: int | None = None
    has_partition_table: bool = False
    partitions: tuple[PartitionEntry, ...] = ()
    extension: str | None = None
    device_info: DeviceDescriptor | None = None
    display_name: str | None = None
    compressed_size: int | None = None
    is_size_estimated: bool = False
    partition_table_type: str | None = None

    def __post_init__(self) -> None:
        if self.partitions and not self.has_partition_table:
            raise ValueError("partitions must be empty when has_partition_table is False")
        if self.extension is not None and self.source_kind is not SourceKind.FILE:
            raise ValueError("extension is only valid for file sources")
        if (self.device_info is not None) != (self.source_kind is SourceKind.DEVICE):
            raise ValueError("device_info must be set exactly for device sources")

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["source_kind"] = self.source_kind.value
        data["partitions"] = [asdict(p) for p in self.partitions]
        return data


class AnomalySeverity(str, Enum):
    WARNING = "warning"
    FATAL = "fatal"


class AnomalyCode(str, Enum):
    UNSUPPORTED_PROTOCOL = "UnsupportedProtocol"
    LOOKS_LIKE_WINDOWS_IMAGE = "LooksLikeWindowsImage"
    MISSING_PARTITION_TABLE = "MissingPartitionTable"


@dataclass(frozen=True)
class Anomaly:
    severity: AnomalySeverity
    code: AnomalyCode
    message: str
    title: str

    @property
    def is_fatal(self) -> bool:
        return self.severity is AnomalySeverity.FATAL


@dataclass(frozen=True)
class RecentUrlEntry:
    """A validated, normalized URL from the recent-images list."""

    url: str

    @property
    def name(self) -> str:
        return urlsplit(self.url).path.rstrip("/").split("/")[-1]

    def __str__(self) -> str:
        return self.url


@dataclass(frozen=True)
class ErrorRecord:
    """What an error presenter receives when a resolution fails."""

    title: str
    source_path: str
    description: str

    def to_dict(self) -> ErrorRecordDict:
        return {
            "title": self.title,
            "source_path": self.source_path,
            "description": self.description,
        }


class ResolutionState(str, Enum):
    IDLE = "idle"
    OPENING = "opening"
    EXTRACTING_METADATA = "extracting_metadata"
    CLASSIFYING = "classifying"
    COMMITTED = "committed"
    ABORTED = "aborted"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ResolutionState.COMMITTED, ResolutionState.ABORTED, ResolutionState.FAILED)


@dataclass(frozen=True)
class ResolutionOutcome:
    """Result of one resolution run.

    ``confirmed`` is False when the user aborted on a warning after commit;
    the selection store has been cleared in that case.
    """

    state: ResolutionState
    selection: RawSelection
    descriptor: SourceDescriptor | None = None
    anomalies: tuple[Anomaly, ...] = ()
    error: FlashSourceError | None = None
    confirmed: bool = False
    history: tuple[ResolutionState, ...] = ()

    @property
    def ok(self) -> bool:
        return self.state is ResolutionState.COMMITTED

    @property
    def warnings(self) -> tuple[Anomaly, ...]:
        return tuple(a for a in self.anomalies if not a.is_fatal)
