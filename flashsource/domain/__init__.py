"""Dependency-free domain models and protocols for flashsource."""

from .exceptions import (
    ConfigurationError,
    DependencyError,
    FlashSourceError,
    MetadataError,
    PersistenceError,
    SourceOpenError,
    UnsupportedProtocolError,
)
from .model import (
    Anomaly,
    AnomalyCode,
    AnomalySeverity,
    DeviceDescriptor,
    DeviceSelection,
    ErrorRecord,
    FileSelection,
    PartitionEntry,
    PartitionTable,
    RawSelection,
    RecentUrlEntry,
    ResolutionOutcome,
    ResolutionState,
    SourceDescriptor,
    SourceKind,
    SourceMetadata,
    UrlSelection,
)
from .protocols import (
    AnomalyListener,
    BackendHandle,
    ErrorPresenter,
    KeyValueStorage,
    SelectionStore,
    WarningConfirmation,
)

__all__ = [
    "Anomaly",
    "AnomalyCode",
    "AnomalyListener",
    "AnomalySeverity",
    "BackendHandle",
    "ConfigurationError",
    "DependencyError",
    "DeviceDescriptor",
    "DeviceSelection",
    "ErrorPresenter",
    "ErrorRecord",
    "FileSelection",
    "FlashSourceError",
    "KeyValueStorage",
    "MetadataError",
    "PartitionEntry",
    "PartitionTable",
    "PersistenceError",
    "RawSelection",
    "RecentUrlEntry",
    "ResolutionOutcome",
    "ResolutionState",
    "SelectionStore",
    "SourceDescriptor",
    "SourceKind",
    "SourceMetadata",
    "SourceOpenError",
    "UnsupportedProtocolError",
    "UrlSelection",
    "WarningConfirmation",
]
