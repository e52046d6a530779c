"""Tests for tryll export / import commands."""

from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from tryll.cli.main import app
from tryll.store import Store

runner = CliRunner()


def _invoke(data_dir: Path, *args: str):
    return runner.invoke(app, ["--data-dir", str(data_dir), *args])


# ---------------------------------------------------------------------------
# tryll export
# ---------------------------------------------------------------------------


def test_export_to_stdout(mobs: Store, data_dir: Path) -> None:
    result = _invoke(data_dir, "export", "minecraft")
    assert result.exit_code == 0
    records = json.loads(result.output)
    assert [r["id"] for r in records] == ["creeper", "zombie"]
    assert records[0]["metadata"]["hp"] == "20"


def test_export_category_to_file(mobs: Store, data_dir: Path, tmp_path: Path) -> None:
    mobs.create_category("minecraft", "Items")
    mobs.add_chunk("minecraft", "Items", {"id": "sword", "text": "sharp"})
    out = tmp_path / "out" / "items.json"

    result = _invoke(data_dir, "export", "minecraft", "--category", "items", "--output", str(out))

    assert result.exit_code == 0
    assert "Exported 1 chunks" in result.output
    assert [r["id"] for r in json.loads(out.read_text(encoding="utf-8"))] == ["sword"]


def test_export_save_to_data_dir(mobs: Store, data_dir: Path) -> None:
    result = _invoke(data_dir, "export", "minecraft", "--save")
    assert result.exit_code == 0
    assert (data_dir / "minecraft.export.json").is_file()


def test_export_missing_project(data_dir: Path) -> None:
    result = _invoke(data_dir, "export", "ghost")
    assert result.exit_code == 1
    assert "not found" in result.output


# ---------------------------------------------------------------------------
# tryll import
# ---------------------------------------------------------------------------


def test_import_creates_project(mobs: Store, data_dir: Path, tmp_path: Path) -> None:
    dump = tmp_path / "dump.json"
    dump.write_text(json.dumps(mobs.export_project("minecraft")), encoding="utf-8")

    result = _invoke(data_dir, "import", "copy", str(dump), "--category", "Mobs")

    assert result.exit_code == 0
    assert "Imported 2 chunks" in result.output
    assert mobs.list_categories("copy") == [{"name": "Mobs", "chunks": 2}]


def test_import_reports_skipped(mobs: Store, data_dir: Path, tmp_path: Path) -> None:
    dump = tmp_path / "dump.json"
    dump.write_text(json.dumps(mobs.export_project("minecraft")), encoding="utf-8")

    result = _invoke(data_dir, "import", "minecraft", str(dump))

    assert result.exit_code == 0
    assert "Imported 0 chunks" in result.output
    assert "2 skipped" in result.output


def test_import_missing_file(data_dir: Path, tmp_path: Path) -> None:
    result = _invoke(data_dir, "import", "demo", str(tmp_path / "absent.json"))
    assert result.exit_code == 1
    assert "Cannot read import file" in result.output


def test_import_invalid_json(data_dir: Path, tmp_path: Path) -> None:
    bad = tmp_path / "bad.json"
    bad.write_text("[{", encoding="utf-8")
    result = _invoke(data_dir, "import", "demo", str(bad))
    assert result.exit_code == 1
    assert "Cannot read import file" in result.output


def test_import_not_an_array(data_dir: Path, tmp_path: Path) -> None:
    obj = tmp_path / "obj.json"
    obj.write_text('{"id": "a"}', encoding="utf-8")
    result = _invoke(data_dir, "import", "demo", str(obj))
    assert result.exit_code == 1
    assert "JSON array" in result.output
