"""Core CLI application and shared utilities."""

from __future__ import annotations

from typing import NoReturn

import typer
from click import get_current_context
from rich.console import Console
from rich.markup import escape

from ..config import Settings, load_settings
from ..logger import get_logger
from ..retention import Cutoffs

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()
err_console = Console(stderr=True)
log = get_logger(__name__)

ISO_DATE = "%Y-%m-%d"


@app.callback()
def main(
    ctx: typer.Context,
    config: str = typer.Option(None, "--config", "-c", help="Path to the YAML config file (default: .tsmrc)"),
    log_level: str = typer.Option(None, "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON lines on stderr"),
) -> None:
    """tsm - scheduled tarsnap backups with weekly/monthly expiry."""
    from ..logger import configure_logging

    configure_logging(level=log_level, json_output=json_logs)
    ctx.obj = {"config": config}


def get_config_path(ctx: typer.Context | None = None) -> str | None:
    """Get config path from context."""
    context = ctx or get_current_context(silent=True)
    return context.obj.get("config") if context and context.obj else None


def get_settings(ctx: typer.Context | None = None) -> Settings:
    return load_settings(get_config_path(ctx))


def fail(message: str) -> NoReturn:
    """Print a diagnostic on stderr and exit non-zero."""
    err_console.print(f"[red]Error: {escape(message)}[/red]")
    raise typer.Exit(1)


def print_header(cutoffs: Cutoffs) -> None:
    console.print(f"Date: {cutoffs.now.strftime(ISO_DATE)}", highlight=False)
    console.print(f"Expire week: {cutoffs.week.strftime(ISO_DATE)}", highlight=False)
    console.print(f"Expire month: {cutoffs.month.strftime(ISO_DATE)}", highlight=False)
    console.print()

