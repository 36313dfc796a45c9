"""CLI coverage for tsm nightly / adhoc / list-expired."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from tarsnap_scheduler.cli import app

EXISTING = [
    "nightly-2001-01-30",
    "nightly-2001-01-31",
    "adhoc-2001-01-01_1200",
]


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def patched_tool(monkeypatch, fake_tool):
    """Route every TarsnapClient the CLI builds to the shared fake."""
    fake_tool.archives = list(EXISTING)
    monkeypatch.setattr(
        "tarsnap_scheduler.cli.archive_commands.TarsnapClient",
        lambda binary: fake_tool,
    )
    return fake_tool


def test_no_args_shows_help(runner):
    result = runner.invoke(app, [])
    assert "nightly" in result.output
    assert "list-expired" in result.output


def test_list_expired_reports_without_side_effects(runner, config_path, patched_tool):
    result = runner.invoke(app, ["-c", str(config_path), "list-expired"])

    assert result.exit_code == 0
    assert "Expire week:" in result.stdout
    assert "Would expire nightly-2001-01-30" in result.stdout
    assert "Would expire nightly-2001-01-31" in result.stdout
    assert "Keeping" not in result.stdout
    assert [c[0] for c in patched_tool.calls] == ["list"]


def test_list_expired_show_all(runner, config_path, patched_tool):
    patched_tool.archives.append("nightly-2999-12-31")

    result = runner.invoke(app, ["-c", str(config_path), "list-expired", "--all"])

    assert result.exit_code == 0
    assert "Keeping nightly-2999-12-31" in result.stdout
    assert "Keeping adhoc-2001-01-01_1200 (adhoc)" in result.stdout


def test_list_expired_show_current_setting(runner, tmp_path, patched_tool):
    cfg = tmp_path / "show.yaml"
    cfg.write_text("KeepWeeks: 1\nKeepMonths: 1\nShowCurrent: true\n", encoding="utf-8")

    result = runner.invoke(app, ["-c", str(cfg), "list-expired"])

    assert result.exit_code == 0
    assert "Keeping adhoc-2001-01-01_1200 (adhoc)" in result.stdout


def test_list_expired_json(runner, config_path, patched_tool):
    result = runner.invoke(app, ["-c", str(config_path), "list-expired", "--format", "json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert [a["name"] for a in data["archives"]] == ["nightly-2001-01-30", "nightly-2001-01-31"]
    assert {a["classification"] for a in data["archives"]} == {"expire"}
    assert data["archives"][1]["month_boundary"] is True
    assert data["skipped"] == ["adhoc-2001-01-01_1200"]


def test_list_expired_with_unbounded_retention(runner, tmp_path, patched_tool):
    cfg = tmp_path / "forever.yaml"
    cfg.write_text("KeepWeeks: 200000\nKeepMonths: 30000\n", encoding="utf-8")

    result = runner.invoke(app, ["-c", str(cfg), "list-expired"])

    assert result.exit_code == 0
    assert result.exception is None
    assert "No archives to expire" in result.stdout
    assert "Would expire" not in result.stdout


def test_list_expired_bad_format(runner, config_path, patched_tool):
    result = runner.invoke(app, ["-c", str(config_path), "list-expired", "--format", "xml"])

    assert result.exit_code == 1
    assert patched_tool.calls == []


def test_nightly_creates_and_expires(runner, config_path, patched_tool):
    result = runner.invoke(app, ["-c", str(config_path), "nightly"])

    assert result.exit_code == 0
    assert patched_tool.created[0].startswith("nightly-")
    assert patched_tool.deleted == ["nightly-2001-01-30", "nightly-2001-01-31"]
    assert "adhoc-2001-01-01_1200" in patched_tool.archives


def test_adhoc_creates_only(runner, config_path, patched_tool):
    result = runner.invoke(app, ["-c", str(config_path), "adhoc"])

    assert result.exit_code == 0
    assert patched_tool.created[0].startswith("adhoc-")
    assert [c[0] for c in patched_tool.calls] == ["create"]


def test_create_failure_exits_non_zero(runner, config_path, patched_tool):
    patched_tool.fail_on.add("create")

    result = runner.invoke(app, ["-c", str(config_path), "nightly"])

    assert result.exit_code == 1
    assert patched_tool.deleted == []
    assert "Would expire" not in result.stdout


def test_missing_config_exits_non_zero(runner, tmp_path, patched_tool):
    result = runner.invoke(app, ["-c", str(tmp_path / "missing.yaml"), "list-expired"])

    assert result.exit_code == 1
    assert patched_tool.calls == []


def test_invalid_config_exits_non_zero(runner, tmp_path, patched_tool):
    cfg = tmp_path / "bad.yaml"
    cfg.write_text("KeepWeeks: 1\n", encoding="utf-8")

    result = runner.invoke(app, ["-c", str(cfg), "nightly"])

    assert result.exit_code == 1
    assert patched_tool.calls == []


def test_unknown_action(runner, config_path):
    result = runner.invoke(app, ["-c", str(config_path), "weekly"])
    assert result.exit_code != 0
