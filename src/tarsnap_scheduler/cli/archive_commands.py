"""
CLI commands that create archives and apply retention.
"""

from __future__ import annotations

from typing import Any, Dict, NoReturn

import typer
from rich.table import Table

from ..config import Settings
from ..dispatcher import Dispatcher
from ..errors import ExternalToolError, TsmError
from ..logger import get_logger
from ..naming import ZERO_INSTANT
from ..retention import RetentionReport
from ..tarsnap import TarsnapClient
from .core import ISO_DATE, app, console, fail, get_settings, print_header

log = get_logger(__name__)


def build_dispatcher(settings: Settings) -> Dispatcher:
    return Dispatcher(TarsnapClient(settings.tarsnap_bin), settings)


def _report_error(e: TsmError) -> NoReturn:
    if isinstance(e, ExternalToolError) and e.stderr:
        log.debug("tarsnap stderr:\n%s", e.stderr)
    log.debug("Invocation failed", exc_info=True)
    fail(str(e))


def _created_label(decision_created: Any) -> str:
    if decision_created == ZERO_INSTANT:
        return "unparseable"
    return decision_created.strftime(ISO_DATE)


def _report_data(report: RetentionReport) -> Dict[str, Any]:
    cutoffs = report.cutoffs
    return {
        "date": cutoffs.now.strftime(ISO_DATE),
        "expire_week": cutoffs.week.strftime(ISO_DATE),
        "expire_month": cutoffs.month.strftime(ISO_DATE),
        "archives": [
            {
                "name": d.name,
                "created": None if d.created == ZERO_INSTANT else d.created.strftime(ISO_DATE),
                "classification": d.classification.value,
                "month_boundary": d.month_boundary,
            }
            for d in report.decisions
        ],
        "skipped": list(report.skipped),
    }


@app.command("nightly")
def nightly(ctx: typer.Context) -> None:
    """Create tonight's archive, then expire old ones if ExpireBackups is set."""
    try:
        settings = get_settings(ctx)
        dispatcher = build_dispatcher(settings)
        now = dispatcher.clock()
        print_header(dispatcher.cutoffs(now))
        summary = dispatcher.run_nightly(now)
    except TsmError as e:
        _report_error(e)

    if summary.report is not None:
        log.info("Expired %d archive(s)", len(summary.expired_names))
    log.info("All done!")


@app.command("adhoc")
def adhoc(ctx: typer.Context) -> None:
    """Create an on-demand archive. Adhoc archives are never expired."""
    try:
        settings = get_settings(ctx)
        dispatcher = build_dispatcher(settings)
        now = dispatcher.clock()
        print_header(dispatcher.cutoffs(now))
        dispatcher.run_adhoc(now)
    except TsmError as e:
        _report_error(e)

    log.info("All done!")


@app.command("list-expired")
def list_expired(
    ctx: typer.Context,
    show_all: bool = typer.Option(
        False,
        "--all",
        "-a",
        help="Also show archives that would be kept (default from ShowCurrent)",
    ),
    format: str = typer.Option("text", "--format", "-f", help="Output format: text, table, json"),
) -> None:
    """Show which archives the next expiry pass would delete. Nothing is deleted."""
    if format not in ("text", "table", "json"):
        fail(f"Invalid format '{format}'. Use: text, table, json")

    try:
        settings = get_settings(ctx)
        report = build_dispatcher(settings).list_expired()
    except TsmError as e:
        _report_error(e)

    show_kept = show_all or settings.show_current

    if format == "json":
        console.print_json(data=_report_data(report))
        return

    print_header(report.cutoffs)

    if format == "table":
        table = Table(title=f"Archives ({len(report.decisions)} evaluated, {len(report.expired)} expired)")
        table.add_column("Archive", style="cyan", no_wrap=True)
        table.add_column("Date", style="green")
        table.add_column("Month end", justify="center")
        table.add_column("Decision")
        for d in report.decisions:
            if not d.expired and not show_kept:
                continue
            table.add_row(
                d.name,
                _created_label(d.created),
                "✓" if d.month_boundary else "",
                "[red]expire[/red]" if d.expired else "[green]keep[/green]",
            )
        if show_kept:
            for name in report.skipped:
                table.add_row(name, "", "", "[dim]adhoc[/dim]")
        console.print(table)
        return

    for d in report.decisions:
        if d.expired:
            console.print(f"Would expire {d.name}", highlight=False)
        elif show_kept:
            console.print(f"Keeping {d.name}", highlight=False)
    if show_kept:
        for name in report.skipped:
            console.print(f"Keeping {name} (adhoc)", highlight=False)
    if not report.expired:
        console.print("No archives to expire", highlight=False)
