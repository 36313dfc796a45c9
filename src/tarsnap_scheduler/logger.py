"""
Logging setup for tsm.

Logs always go to stderr so that ``list-expired`` reports on stdout can be
piped. Humans get rich output; cron jobs and the scheduler can ask for one
JSON object per line with ``--json-logs`` or ``LOG_FORMAT=json``.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime
from typing import Any, TextIO

from rich.console import Console
from rich.logging import RichHandler

from .errors import ExternalToolError

# Loggers of libraries that chatter at INFO about their own bookkeeping.
NOISY_LOGGERS = ("apscheduler",)


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Structured fields passed through ``log_extra`` (``archive``, ``kind`` ...)
    are merged into the object. A failed tarsnap call also contributes the
    command line and exit status of the ``ExternalToolError``.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "pid": record.process,
        }

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)
            error = record.exc_info[1]
            if isinstance(error, ExternalToolError):
                log_obj["command"] = error.command
                log_obj["returncode"] = error.returncode

        if hasattr(record, "extra_fields"):
            log_obj.update(record.extra_fields)

        return json.dumps(log_obj, default=str)


def _rich_handler(stream: TextIO) -> logging.Handler:
    handler = RichHandler(
        console=Console(file=stream),
        rich_tracebacks=True,
        markup=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    return handler


def configure_logging(
    level: str | None = None,
    json_output: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Configure root logging on ``stream`` (stderr by default)."""
    lvl_str = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    lvl = getattr(logging, lvl_str, logging.INFO)
    stream = stream or sys.stderr

    handler: logging.Handler
    if json_output or os.getenv("LOG_FORMAT") == "json":
        handler = logging.StreamHandler(stream)
        handler.setFormatter(JSONFormatter())
    else:
        handler = _rich_handler(stream)

    logging.basicConfig(level=lvl, handlers=[handler], force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(lvl if lvl <= logging.DEBUG else logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_extra(**kwargs: Any) -> dict[str, Any]:
    """Extra fields for structured logging: ``log.info(msg, extra=log_extra(archive=name))``."""
    return {"extra_fields": kwargs}
