"""Anomaly classifier: flag warnings and fatal problems on a resolved source.

Anomalies are plain values. The orchestrator decides what to do with them:
a fatal one aborts before commit, warnings are confirmed by the user after
commit.
"""

from __future__ import annotations

from typing import Iterable

from flashsource.domain.model import (
    Anomaly,
    AnomalyCode,
    AnomalySeverity,
    RawSelection,
    SourceDescriptor,
    SourceKind,
)
from flashsource.formats import DEFAULT_WINDOWS_IMAGE_PATTERNS, is_url, looks_like_windows_image
from flashsource.resolution import messages

__all__ = ["classify", "first_fatal"]


def classify(
    selection: RawSelection,
    descriptor: SourceDescriptor,
    *,
    windows_image_patterns: Iterable[str] = DEFAULT_WINDOWS_IMAGE_PATTERNS,
) -> list[Anomaly]:
    """Return the anomalies of a resolution, in rule order.

    Rules:
        1. URL selection not starting with http:// or https:// -> fatal
        2. File name that looks like a Windows installer image -> warning
        3. No partition table -> warning
    """
    anomalies: list[Anomaly] = []

    if selection.kind is SourceKind.URL and not is_url(selection.url):
        anomalies.append(
            Anomaly(
                severity=AnomalySeverity.FATAL,
                code=AnomalyCode.UNSUPPORTED_PROTOCOL,
                message=messages.unsupported_protocol_error(),
                title=messages.UNSUPPORTED_PROTOCOL_TITLE,
            )
        )

    if selection.kind is SourceKind.FILE and looks_like_windows_image(selection.path, windows_image_patterns):
        anomalies.append(
            Anomaly(
                severity=AnomalySeverity.WARNING,
                code=AnomalyCode.LOOKS_LIKE_WINDOWS_IMAGE,
                message=messages.windows_image_warning(),
                title=messages.WINDOWS_IMAGE_TITLE,
            )
        )

    if not descriptor.has_partition_table:
        anomalies.append(
            Anomaly(
                severity=AnomalySeverity.WARNING,
                code=AnomalyCode.MISSING_PARTITION_TABLE,
                message=messages.missing_partition_table_warning(),
                title=messages.MISSING_PARTITION_TABLE_TITLE,
            )
        )

    return anomalies


def first_fatal(anomalies: Iterable[Anomaly]) -> Anomaly | None:
    return next((anomaly for anomaly in anomalies if anomaly.is_fatal), None)
