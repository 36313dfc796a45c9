"""Error types raised by tarsnap-scheduler."""

from __future__ import annotations

from typing import Optional, Sequence


class TsmError(Exception):
    """Base class for fatal errors in a single invocation."""
    pass


class ConfigError(TsmError):
    """Raised when a required setting is missing or invalid."""
    pass


class ExternalToolError(TsmError):
    """Raised when the archival tool exits non-zero or cannot be run."""

    def __init__(
        self,
        message: str,
        command: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.command = list(command) if command else []
        self.returncode = returncode
        self.stderr = stderr


class ArchiveNameError(TsmError):
    """Raised when an archive name does not match its expected format."""

    def __init__(self, name: str, expected: str):
        super().__init__(f"Archive name {name!r} does not match {expected!r}")
        self.name = name
        self.expected = expected
