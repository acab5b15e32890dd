"""CLI helper functions: build resolver pieces from configuration."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from flashsource.app.errors import format_error_record
from flashsource.config.schema import AppConfig
from flashsource.domain.model import ErrorRecord, ResolutionOutcome
from flashsource.domain.protocols import SelectionStore
from flashsource.resolution import RecentUrlStore, SourceFactory, SourceResolver
from flashsource.storage import InMemorySelectionStore, JsonFileStorage


def build_recent_store(config: AppConfig) -> RecentUrlStore:
    return RecentUrlStore(
        JsonFileStorage(config.storage_path),
        key=config.recent_urls_key,
        limit=config.recent_urls_limit,
    )


def build_resolver(
    config: AppConfig,
    console: Console,
    selection_store: SelectionStore | None = None,
) -> SourceResolver:
    """Wire a SourceResolver that reports failures on ``console``."""

    def present(record: ErrorRecord) -> None:
        console.print(format_error_record(record))

    return SourceResolver(
        selection_store or InMemorySelectionStore(),
        build_recent_store(config),
        factory=SourceFactory(http_timeout=config.http_timeout_s, direct_io=config.direct_io),
        error_presenter=present,
        windows_image_patterns=config.windows_image_patterns,
    )


def _format_size(size: int | None) -> str:
    if size is None:
        return "unknown"
    value = float(size)
    for unit in ("B", "KiB", "MiB", "GiB", "TiB"):
        if value < 1024 or unit == "TiB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


def render_descriptor(outcome: ResolutionOutcome) -> Table:
    """Summarise a committed descriptor as a two-column table."""
    descriptor = outcome.descriptor
    table = Table(title="Selected source", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    if descriptor is None:
        return table

    size = _format_size(descriptor.size)
    if descriptor.is_size_estimated:
        size += " (estimated)"
    table.add_row("Name", descriptor.display_name or descriptor.path)
    table.add_row("Path", descriptor.path)
    table.add_row("Kind", descriptor.source_kind.value)
    table.add_row("Size", size)
    if descriptor.compressed_size is not None:
        table.add_row("Compressed size", _format_size(descriptor.compressed_size))
    if descriptor.extension:
        table.add_row("Extension", descriptor.extension)
    if descriptor.has_partition_table:
        table.add_row(
            "Partition table",
            f"{descriptor.partition_table_type} ({len(descriptor.partitions)} partitions)",
        )
    else:
        table.add_row("Partition table", "none")
    return table
