"""
CLI command for the long-running nightly scheduler.
"""

from __future__ import annotations

import typer

from ..errors import TsmError
from ..logger import get_logger
from ..scheduler import NightlyScheduler
from .archive_commands import build_dispatcher
from .core import app, console, fail, get_settings

log = get_logger(__name__)


@app.command("schedule")
def schedule(ctx: typer.Context) -> None:
    """Run the nightly action every day at Schedule.NightlyTime.

    This is a foreground service, an alternative to a cron entry such as:

        0 2 * * * tsm -c /root/.tsmrc nightly

    It runs until interrupted with Ctrl+C or SIGTERM.
    """
    try:
        settings = get_settings(ctx)
        if not settings.backup_dirs:
            fail("No backup directories specified (BackupDirs)")
        scheduler = NightlyScheduler(settings, build_dispatcher(settings))
    except TsmError as e:
        fail(str(e))

    console.print("\n[bold cyan]Nightly Scheduler[/bold cyan]")
    console.print(f"  tarsnap: {settings.tarsnap_bin}", highlight=False)
    console.print(f"  Backup dirs: {', '.join(settings.backup_dirs) or '(none)'}", highlight=False)
    console.print(f"  Nightly at: {settings.schedule.nightly_time}", highlight=False)
    console.print(
        f"  Retention: {settings.keep_weeks} week(s), {settings.keep_months} month(s), "
        f"expiry {'enabled' if settings.expire_backups else 'disabled'}",
        highlight=False,
    )
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    scheduler.start()
