"""flashsource command-line entry point."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from flashsource.app import configure_logging
from flashsource.cli.commands import register_recent, register_select
from flashsource.config import load_config
from flashsource.domain.exceptions import ConfigurationError

app = typer.Typer(
    help="Resolve disk-image sources (files, URLs, drives) before flashing",
    no_args_is_help=True,
)

err_console = Console(stderr=True)


@app.callback()
def main(
    ctx: typer.Context,
    config: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            metavar="PATH",
            envvar="FLASHSOURCE_CONFIG",
            help="Config file (default: ~/.config/flashsource/config.json)",
        ),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    try:
        cfg = load_config(config)
    except ConfigurationError as exc:
        err_console.print(exc.format_rich())
        raise typer.Exit(code=2) from exc

    configure_logging("DEBUG" if verbose else cfg.log_level)
    ctx.obj = cfg


register_select(app)
register_recent(app)


if __name__ == "__main__":
    app()
