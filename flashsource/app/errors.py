"""Error display helpers for presenters."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.markup import escape
from rich.panel import Panel

if TYPE_CHECKING:
    from flashsource.domain.model import ErrorRecord

__all__ = ["format_error_record"]


def format_error_record(record: ErrorRecord) -> Panel:
    """Render a resolution failure as a rich Panel."""
    return Panel(
        f"{escape(record.description)}\n\n[dim]{escape(record.source_path)}[/dim]",
        title=f"[bold red]{escape(record.title)}[/bold red]",
        border_style="red",
        expand=False,
    )
