"""Source resolution: factory, metadata extraction, classification, commit."""

from flashsource.resolution.classifier import classify, first_fatal
from flashsource.resolution.extractor import MetadataExtractor
from flashsource.resolution.factory import SourceFactory
from flashsource.resolution.network_drives import replace_windows_network_drive_letter
from flashsource.resolution.orchestrator import SourceResolver
from flashsource.resolution.recent import (
    MAX_RECENT_URLS,
    RECENT_URLS_KEY,
    RecentUrlStore,
    normalize_recent_urls,
)

__all__ = [
    "MAX_RECENT_URLS",
    "RECENT_URLS_KEY",
    "MetadataExtractor",
    "RecentUrlStore",
    "SourceFactory",
    "SourceResolver",
    "classify",
    "first_fatal",
    "normalize_recent_urls",
    "replace_windows_network_drive_letter",
]
