from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

import pytest

from tarsnap_scheduler.config import Settings, load_settings
from tarsnap_scheduler.errors import ExternalToolError
from tarsnap_scheduler.tarsnap import ToolResult


class FakeArchiveTool:
    """In-memory stand-in for tarsnap that records every call in order."""

    def __init__(self, archives: Optional[List[str]] = None):
        self.archives: List[str] = list(archives or [])
        self.calls: List[tuple] = []
        self.fail_on: set[str] = set()

    def _fail(self, op: str, name: str = "") -> None:
        if op in self.fail_on or f"{op}:{name}" in self.fail_on:
            raise ExternalToolError(
                f"tarsnap {op} failed",
                command=["tarsnap", op, name],
                returncode=1,
                stderr="tarsnap: error",
            )

    def list_archives(self) -> List[str]:
        self.calls.append(("list",))
        self._fail("list")
        return list(self.archives)

    def create_archive(self, name: str, paths: Sequence[str], extra_args: Sequence[str]) -> ToolResult:
        self.calls.append(("create", name, list(paths), list(extra_args)))
        self._fail("create", name)
        self.archives.append(name)
        return ToolResult(command=["tarsnap", "-c", "-f", name], returncode=0)

    def delete_archive(self, name: str) -> ToolResult:
        self.calls.append(("delete", name))
        self._fail("delete", name)
        self.archives.remove(name)
        return ToolResult(command=["tarsnap", "-d", "-f", name], returncode=0)

    @property
    def deleted(self) -> List[str]:
        return [c[1] for c in self.calls if c[0] == "delete"]

    @property
    def created(self) -> List[str]:
        return [c[1] for c in self.calls if c[0] == "create"]


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the developer's own ~/.tsmrc and TSM_* variables out of tests."""
    monkeypatch.delenv("TSM_CONFIG", raising=False)
    monkeypatch.delenv("TSM_TARSNAP_BIN", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    """Write an isolated .tsmrc using the CamelCase keys."""
    path = tmp_path / "tsmrc.yaml"
    path.write_text(
        """
TarsnapBin: /opt/tarsnap/bin/tarsnap
TarsnapArgs:
  - "--keyfile"
  - /root/tarsnap.key
  - '"--humanize-numbers"'
BackupDirs:
  - /etc
  - /home
KeepWeeks: 2
KeepMonths: 3
ExpireBackups: true
""".strip(),
        encoding="utf-8",
    )
    return path


@pytest.fixture()
def settings(config_path: Path) -> Settings:
    return load_settings(str(config_path))


@pytest.fixture()
def fake_tool() -> FakeArchiveTool:
    return FakeArchiveTool()
