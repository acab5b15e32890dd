"""``recent`` command: show or clear the recently used image URLs."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from flashsource.cli.helpers import build_recent_store
from flashsource.config.schema import AppConfig

console = Console()


def register_recent(app: typer.Typer) -> None:
    @app.command("recent", rich_help_panel="History")
    def recent_cmd(
        ctx: typer.Context,
        clear: Annotated[bool, typer.Option("--clear", help="Forget all recent URLs")] = False,
    ) -> None:
        """List recently selected image URLs, newest last."""
        config: AppConfig = ctx.obj
        store = build_recent_store(config)

        if clear:
            store.clear()
            console.print("Recent URLs cleared")
            return

        entries = store.load()
        if not entries:
            console.print("No recent URLs")
            return

        table = Table(title="Recent URLs")
        table.add_column("#", justify="right")
        table.add_column("Name", style="bold")
        table.add_column("URL")
        for index, entry in enumerate(entries, 1):
            table.add_row(str(index), entry.name, entry.url)
        console.print(table)

    return None
