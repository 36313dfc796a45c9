"""CLI commands for tarsnap-scheduler."""

from .core import app

# These imports register CLI commands with the app via decorators
from . import archive_commands, schedule_commands  # noqa: E402,F401


def main() -> None:
    """Console entry point for the tsm CLI."""
    app()


__all__ = ["app", "main"]
