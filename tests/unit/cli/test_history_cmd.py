"""Tests for tryll history commands (list, show, rollback)."""

from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from tryll.cli.main import app
from tryll.store import Store

runner = CliRunner()


def _invoke(data_dir: Path, *args: str, input: str | None = None):
    return runner.invoke(app, ["--data-dir", str(data_dir), *args], input=input)


def test_history_list(mobs: Store, data_dir: Path) -> None:
    result = _invoke(data_dir, "history", "list", "minecraft")
    assert result.exit_code == 0
    newest = mobs.get_history("minecraft")[0]
    assert newest["id"][:8] in result.output


def test_history_list_empty(store: Store, data_dir: Path) -> None:
    Store(data_dir, track_history=False).create_project("quiet")
    result = _invoke(data_dir, "history", "list", "quiet")
    assert result.exit_code == 0
    assert "No history recorded" in result.output


def test_history_show_json(mobs: Store, data_dir: Path) -> None:
    oldest = mobs.get_history("minecraft")[-1]
    result = _invoke(data_dir, "history", "show", "minecraft", oldest["id"], "--json")
    assert result.exit_code == 0
    detail = json.loads(result.output)
    assert detail["action"] == "create_project"
    assert detail["prev_snapshot"] is None


def test_history_show_by_prefix(mobs: Store, data_dir: Path) -> None:
    newest = mobs.get_history("minecraft")[0]
    result = _invoke(data_dir, "history", "show", "minecraft", newest["id"][:8])
    assert result.exit_code == 0
    assert "add_chunk" in result.output
    assert "Mobs (2 chunks)" in result.output


def test_history_show_unknown_commit(mobs: Store, data_dir: Path) -> None:
    result = _invoke(data_dir, "history", "show", "minecraft", "zzzz")
    assert result.exit_code == 1
    assert "not found" in result.output
    assert "tryll history list" in result.output


def test_history_rollback(mobs: Store, data_dir: Path) -> None:
    target = mobs.get_history("minecraft")[2]  # create_category
    result = _invoke(data_dir, "history", "rollback", "minecraft", target["id"], "--yes")

    assert result.exit_code == 0
    assert "Rolled back" in result.output
    assert mobs.get_stats("minecraft")["total_chunks"] == 0
    latest = mobs.get_history("minecraft")[0]
    assert latest["action"] == "rollback"
    assert latest["source"] == "cli"


def test_history_rollback_cancelled(mobs: Store, data_dir: Path) -> None:
    target = mobs.get_history("minecraft")[2]
    result = _invoke(data_dir, "history", "rollback", "minecraft", target["id"], input="n\n")
    assert result.exit_code == 0
    assert "Cancelled" in result.output
    assert mobs.get_stats("minecraft")["total_chunks"] == 2


def test_history_list_with_tracking_disabled(
    mobs: Store, data_dir: Path, tmp_path: Path, monkeypatch
) -> None:
    (tmp_path / "tryll.yaml").write_text("history:\n  enabled: false\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    result = _invoke(data_dir, "history", "list", "minecraft")
    assert result.exit_code == 0
    assert "earlier commits are still listed" in result.output
    assert "This change was not recorded" not in result.output
