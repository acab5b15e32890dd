"""Source selection commands: ``file``, ``url`` and ``device``."""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from rich.console import Console

from flashsource.cli.helpers import build_resolver, render_descriptor
from flashsource.config.schema import AppConfig
from flashsource.domain.model import (
    Anomaly,
    DeviceSelection,
    FileSelection,
    RawSelection,
    ResolutionState,
    UrlSelection,
)
from flashsource.sources.block_device import describe_device

console = Console()

EXIT_ABORTED = 1
EXIT_FAILED = 2

YesOption = Annotated[
    bool,
    typer.Option("--yes", "-y", help="Accept warnings without asking"),
]


def _confirm_on_terminal(anomaly: Anomaly) -> bool:
    console.print(f"[yellow]⚠ {anomaly.title}[/yellow]")
    console.print(anomaly.message)
    return typer.confirm("Continue with this source?", default=False)


def _run_selection(ctx: typer.Context, selection: RawSelection, yes: bool) -> None:
    config: AppConfig = ctx.obj
    resolver = build_resolver(config, console)

    def auto_accept(anomaly: Anomaly) -> bool:
        console.print(f"[yellow]⚠ {anomaly.title}[/yellow] (accepted)")
        return True

    outcome = asyncio.run(
        resolver.resolve(selection, confirm=auto_accept if yes else _confirm_on_terminal)
    )

    if outcome.state is ResolutionState.FAILED:
        raise typer.Exit(code=EXIT_FAILED)
    if outcome.state is ResolutionState.ABORTED:
        console.print("Nothing selected")
        raise typer.Exit(code=EXIT_ABORTED)
    if not outcome.confirmed:
        console.print("[yellow]Selection removed[/yellow]")
        raise typer.Exit(code=EXIT_ABORTED)

    console.print(render_descriptor(outcome))
    console.print("[green]✓ Source selected[/green]")


def register_select(app: typer.Typer) -> None:
    @app.command("file", rich_help_panel="Select Source")
    def file_cmd(
        ctx: typer.Context,
        path: Annotated[str, typer.Argument(metavar="PATH", help="Image file (may be compressed or zipped)")],
        yes: YesOption = False,
    ) -> None:
        """Select a local image file."""
        _run_selection(ctx, FileSelection(path), yes)

    @app.command("url", rich_help_panel="Select Source")
    def url_cmd(
        ctx: typer.Context,
        url: Annotated[str, typer.Argument(metavar="URL", help="http:// or https:// image URL")],
        yes: YesOption = False,
    ) -> None:
        """Select a remote image by URL."""
        _run_selection(ctx, UrlSelection(url.strip()), yes)

    @app.command("device", rich_help_panel="Select Source")
    def device_cmd(
        ctx: typer.Context,
        node: Annotated[str, typer.Argument(metavar="NODE", help="Block device node, e.g. /dev/sdb")],
        yes: YesOption = False,
    ) -> None:
        """Select a block device to clone from."""
        try:
            drive = describe_device(node)
        except (OSError, ValueError) as exc:
            console.print(f"[red]✗ Cannot use {node}: {exc}[/red]")
            raise typer.Exit(code=EXIT_FAILED) from exc
        _run_selection(ctx, DeviceSelection(drive), yes)

    return None
