"""
Collaborator interface for the external archival tool, and the tarsnap(1)
implementation of it.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from typing import List, Protocol, Sequence

from .errors import ExternalToolError
from .logger import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class ToolResult:
    """Outcome of a successful tool invocation."""
    command: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""


class ArchiveTool(Protocol):
    """The three operations tsm needs from an archival tool.

    Every method raises ExternalToolError on failure.
    """

    def list_archives(self) -> List[str]: ...

    def create_archive(self, name: str, paths: Sequence[str], extra_args: Sequence[str]) -> ToolResult: ...

    def delete_archive(self, name: str) -> ToolResult: ...


class TarsnapClient:
    """Runs tarsnap as a subprocess. Calls block until tarsnap exits."""

    def __init__(self, binary: str):
        self.binary = binary

    def _run(self, args: Sequence[str]) -> ToolResult:
        cmd = [self.binary, *args]
        log.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except FileNotFoundError as e:
            raise ExternalToolError(f"tarsnap binary not found: {self.binary}", command=cmd) from e
        except OSError as e:
            raise ExternalToolError(f"Failed to run {self.binary}: {e}", command=cmd) from e

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            message = f"{' '.join(cmd)} exited with status {result.returncode}"
            if stderr:
                message = f"{message}: {stderr}"
            raise ExternalToolError(message, command=cmd, returncode=result.returncode, stderr=stderr)

        return ToolResult(
            command=cmd,
            returncode=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )

    def list_archives(self) -> List[str]:
        result = self._run(["--list-archives"])
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def create_archive(self, name: str, paths: Sequence[str], extra_args: Sequence[str]) -> ToolResult:
        return self._run(["-c", "-f", name, *extra_args, *paths])

    def delete_archive(self, name: str) -> ToolResult:
        return self._run(["-d", "-f", name])
