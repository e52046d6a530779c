"""Tests for the MCP tool surface."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from tryll.server import create_mcp_server
from tryll.server.mcp_server import (
    export_payload,
    import_payload,
    load_import_file,
    run_tool,
)
from tryll.store import NotFoundError, Store, StoreError

EXPECTED_TOOLS = {
    "create_project",
    "list_projects",
    "delete_project",
    "get_project_stats",
    "create_category",
    "list_categories",
    "rename_category",
    "delete_category",
    "add_chunk",
    "bulk_add_chunks",
    "get_chunk",
    "update_chunk",
    "delete_chunk",
    "duplicate_chunk",
    "move_chunk",
    "search_chunks",
    "export_project",
    "export_category",
    "import_json",
    "bulk_update_metadata",
    "merge_projects",
    "get_history",
    "get_commit",
    "rollback",
}


def _call(server, name: str, /, **arguments) -> str:
    """Invoke a tool and return its text output."""
    result = asyncio.run(server.call_tool(name, arguments))
    content = result[0] if isinstance(result, tuple) else result
    return content[0].text


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def test_run_tool_renders_json() -> None:
    assert json.loads(run_tool(lambda: {"ok": "ü"})) == {"ok": "ü"}
    assert "ü" in run_tool(lambda: {"ok": "ü"})


def test_run_tool_maps_store_error() -> None:
    def boom() -> None:
        raise NotFoundError('Project "ghost" not found')

    assert run_tool(boom) == 'Error: Project "ghost" not found'


def test_run_tool_propagates_unexpected_errors() -> None:
    def broken() -> None:
        raise RuntimeError("bug")

    with pytest.raises(RuntimeError):
        run_tool(broken)


def test_load_import_file(tmp_path: Path) -> None:
    path = tmp_path / "dump.json"
    path.write_text('[{"id": "a", "text": "x"}]', encoding="utf-8")
    assert load_import_file(str(path)) == [{"id": "a", "text": "x"}]


def test_load_import_file_missing(tmp_path: Path) -> None:
    with pytest.raises(StoreError, match="not found"):
        load_import_file(str(tmp_path / "absent.json"))


def test_load_import_file_invalid(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text("[", encoding="utf-8")
    with pytest.raises(StoreError, match="Cannot read"):
        load_import_file(str(path))


def test_import_payload_requires_source(store: Store) -> None:
    with pytest.raises(StoreError, match="json_path"):
        import_payload(store, "demo", None, None, None)


def test_import_payload_prefers_inline_data(store: Store, tmp_path: Path) -> None:
    path = tmp_path / "dump.json"
    path.write_text('[{"id": "from_file"}]', encoding="utf-8")
    import_payload(store, "demo", None, str(path), [{"id": "inline"}])
    assert [r["id"] for r in store.export_project("demo")] == ["inline"]


def test_export_payload_inline(mobs: Store) -> None:
    result = export_payload(mobs, "minecraft", None, False)
    assert result["exported"] == 2
    assert [r["id"] for r in result["data"]] == ["creeper", "zombie"]


def test_export_payload_save(mobs: Store, data_dir: Path) -> None:
    result = export_payload(mobs, "minecraft", "mobs", True)
    assert result["saved_to"] == str(data_dir / "minecraft.export.json")


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


def test_server_registers_every_tool(store: Store) -> None:
    server = create_mcp_server(store)
    tools = {t.name: t for t in asyncio.run(server.list_tools())}
    assert set(tools) == EXPECTED_TOOLS
    assert tools["get_chunk"].annotations.readOnlyHint is True
    assert tools["delete_project"].annotations.destructiveHint is True


def test_export_project_tool_is_not_read_only(store: Store) -> None:
    server = create_mcp_server(store)
    tools = {t.name: t for t in asyncio.run(server.list_tools())}
    assert tools["export_project"].annotations.readOnlyHint is not True
    assert tools["export_project"].annotations.destructiveHint is False
    assert tools["export_category"].annotations.readOnlyHint is True


def test_tool_schema_describes_parameters(store: Store) -> None:
    server = create_mcp_server(store)
    tools = {t.name: t for t in asyncio.run(server.list_tools())}
    props = tools["add_chunk"].inputSchema["properties"]
    assert set(props) == {"project", "category", "id", "text", "metadata"}
    assert "unique" in props["id"]["description"].lower()
    assert set(tools["add_chunk"].inputSchema["required"]) == {"project", "category", "id", "text"}


def test_tool_round_trip(store: Store) -> None:
    server = create_mcp_server(store)
    assert json.loads(_call(server, "create_project", name="demo"))["name"] == "demo"
    _call(server, "create_category", project="demo", name="Mobs")
    added = json.loads(
        _call(server, "add_chunk", project="demo", category="Mobs", id="creeper", text="boom",
              metadata={"hp": 20})
    )
    assert added == {"id": "creeper", "category": "Mobs"}
    chunk = json.loads(_call(server, "get_chunk", project="demo", id="creeper"))
    assert chunk["custom_fields"] == [{"key": "hp", "value": "20"}]


def test_tool_error_string(store: Store) -> None:
    server = create_mcp_server(store)
    assert _call(server, "get_project_stats", name="ghost") == 'Error: Project "ghost" not found'


def test_tool_duplicate_id_error(mobs: Store) -> None:
    server = create_mcp_server(mobs)
    text = _call(server, "add_chunk", project="minecraft", category="Mobs", id="creeper", text="again")
    assert text.startswith("Error: ")
    assert "already exists" in text


def test_tool_commits_use_store_source(mobs: Store) -> None:
    server = create_mcp_server(mobs)
    _call(server, "delete_chunk", project="minecraft", id="zombie")
    latest = mobs.get_history("minecraft")[0]
    assert latest["action"] == "delete_chunk"
    assert latest["source"] == "mcp"
