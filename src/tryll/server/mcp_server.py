"""MCP stdio server exposing the Tryll store as tools.

One tool per store operation. Every tool returns pretty-printed JSON on
success and ``Error: <message>`` on a store failure, so agents see the same
contract whatever the operation.

Usage:
    tryll serve                                  # stdio server (via CLI)
    claude --mcp-server tryll="tryll serve"      # agent integration
"""

import json
import logging
from pathlib import Path
from typing import Annotated, Any, Callable, Optional

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from tryll.store import Store, StoreError

logger = logging.getLogger(__name__)

_READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False)
_ADDITIVE = ToolAnnotations(destructiveHint=False, idempotentHint=False)
_DESTRUCTIVE = ToolAnnotations(destructiveHint=True, idempotentHint=False)

ProjectArg = Annotated[str, Field(description="Project name")]
CategoryArg = Annotated[str, Field(description="Category name")]
ChunkIdArg = Annotated[str, Field(description="Chunk ID")]


def render_result(result: Any) -> str:
    return json.dumps(result, indent=2, ensure_ascii=False)


def run_tool(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> str:
    """Call a store operation and render its result or its error message."""
    try:
        return render_result(fn(*args, **kwargs))
    except StoreError as e:
        logger.debug("Tool %s failed: %s", getattr(fn, "__name__", fn), e)
        return f"Error: {e}"


def load_import_file(json_path: str) -> Any:
    """Read a JSON import payload from *json_path*.

    Raises:
        StoreError: If the file is missing or not valid JSON.
    """
    path = Path(json_path).expanduser()
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise StoreError(f"Import file not found: {json_path}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise StoreError(f"Cannot read import file {json_path}: {e}") from e


def import_payload(
    store: Store,
    project: str,
    category: Optional[str],
    json_path: Optional[str],
    data: Optional[list],
) -> dict:
    payload = data
    if payload is None and json_path:
        payload = load_import_file(json_path)
    if payload is None:
        raise StoreError('Provide either "json_path" or "data" parameter')
    return store.import_json(project, payload, category)


def export_payload(store: Store, project: str, category: Optional[str], save_to_file: bool) -> dict:
    if save_to_file:
        return store.export_to_file(project, category)
    if category:
        records = store.export_category(project, category)
    else:
        records = store.export_project(project)
    return {"exported": len(records), "data": records}


def create_mcp_server(store: Store) -> FastMCP:
    """Create an MCP server bound to *store*.

    Args:
        store: The local store every tool operates on.

    Returns:
        Configured FastMCP server instance
    """
    mcp = FastMCP(
        "tryll-dataset-builder",
        instructions=(
            "Build knowledge-chunk datasets for RAG. "
            "Projects hold categories; categories hold chunks with a project-unique ID, "
            "text, and metadata. Every change is recorded in the project history."
        ),
    )

    # ---- Project ----

    @mcp.tool(
        description="Create a new dataset project. Each project stores categories and chunks.",
        annotations=_ADDITIVE,
    )
    def create_project(name: Annotated[str, Field(description="Project name (used as filename)")]) -> str:
        return run_tool(store.create_project, name)

    @mcp.tool(
        description="List all dataset projects with category and chunk counts.",
        annotations=_READ_ONLY,
    )
    def list_projects() -> str:
        return run_tool(store.list_projects)

    @mcp.tool(description="Permanently delete a project and all its data.", annotations=_DESTRUCTIVE)
    def delete_project(name: Annotated[str, Field(description="Project name to delete")]) -> str:
        return run_tool(store.delete_project, name)

    @mcp.tool(
        description="Project statistics: categories, total chunks, average/longest/shortest text length.",
        annotations=_READ_ONLY,
    )
    def get_project_stats(name: ProjectArg) -> str:
        return run_tool(store.get_stats, name)

    # ---- Category ----

    @mcp.tool(
        description="Add a category to a project (e.g. 'Mobs', 'Weapons', 'Biomes').",
        annotations=_ADDITIVE,
    )
    def create_category(project: ProjectArg, name: CategoryArg) -> str:
        return run_tool(store.create_category, project, name)

    @mcp.tool(description="List categories in a project with chunk counts.", annotations=_READ_ONLY)
    def list_categories(project: ProjectArg) -> str:
        return run_tool(store.list_categories, project)

    @mcp.tool(description="Rename an existing category.", annotations=_ADDITIVE)
    def rename_category(
        project: ProjectArg,
        old_name: Annotated[str, Field(description="Current category name")],
        new_name: Annotated[str, Field(description="New category name")],
    ) -> str:
        return run_tool(store.rename_category, project, old_name, new_name)

    @mcp.tool(description="Delete a category and all its chunks.", annotations=_DESTRUCTIVE)
    def delete_category(project: ProjectArg, name: CategoryArg) -> str:
        return run_tool(store.delete_category, project, name)

    # ---- Chunk ----

    @mcp.tool(
        description=(
            "Add a knowledge chunk to a category. The ID must be unique across the project. "
            "Metadata standard fields: page_title, source, license; other keys become custom fields."
        ),
        annotations=_ADDITIVE,
    )
    def add_chunk(
        project: ProjectArg,
        category: CategoryArg,
        id: Annotated[str, Field(description="Unique chunk ID (e.g. 'creeper', 'diamond_sword')")],
        text: Annotated[str, Field(description="Main text content of the chunk")],
        metadata: Annotated[Optional[dict[str, Any]], Field(
            description="Optional metadata: page_title, source, license, plus custom fields.",
        )] = None,
    ) -> str:
        return run_tool(store.add_chunk, project, category, {"id": id, "text": text, "metadata": metadata})

    @mcp.tool(
        description="Add many chunks at once. Duplicate or empty IDs are skipped and reported.",
        annotations=_ADDITIVE,
    )
    def bulk_add_chunks(
        project: ProjectArg,
        category: CategoryArg,
        chunks: Annotated[list[dict[str, Any]], Field(
            description="Chunk objects, each with id, text, and optional metadata.",
        )],
    ) -> str:
        return run_tool(store.bulk_add_chunks, project, category, chunks)

    @mcp.tool(description="Get the full content of a chunk by ID.", annotations=_READ_ONLY)
    def get_chunk(project: ProjectArg, id: ChunkIdArg) -> str:
        return run_tool(store.get_chunk, project, id)

    @mcp.tool(
        description=(
            "Update fields of a chunk. Only provided fields change; "
            "non-standard metadata keys replace the custom fields."
        ),
        annotations=_ADDITIVE,
    )
    def update_chunk(
        project: ProjectArg,
        id: Annotated[str, Field(description="Current chunk ID")],
        new_id: Annotated[Optional[str], Field(description="New chunk ID (if renaming)")] = None,
        text: Annotated[Optional[str], Field(description="New text content")] = None,
        page_title: Annotated[Optional[str], Field(description="New page title")] = None,
        source: Annotated[Optional[str], Field(description="New source")] = None,
        license: Annotated[Optional[str], Field(description="New license")] = None,
        metadata: Annotated[Optional[dict[str, Any]], Field(
            description="Custom metadata fields (replace the existing custom fields when any non-standard key is given)",
        )] = None,
    ) -> str:
        return run_tool(
            store.update_chunk,
            project,
            id,
            new_id=new_id,
            text=text,
            page_title=page_title,
            source=source,
            license=license,
            metadata=metadata,
        )

    @mcp.tool(description="Delete a chunk by ID.", annotations=_DESTRUCTIVE)
    def delete_chunk(project: ProjectArg, id: ChunkIdArg) -> str:
        return run_tool(store.delete_chunk, project, id)

    @mcp.tool(
        description="Copy a chunk under a new ID (<id>_copy, <id>_copy_1, ...).",
        annotations=_ADDITIVE,
    )
    def duplicate_chunk(project: ProjectArg, id: ChunkIdArg) -> str:
        return run_tool(store.duplicate_chunk, project, id)

    @mcp.tool(description="Move a chunk to a different category.", annotations=_ADDITIVE)
    def move_chunk(
        project: ProjectArg,
        id: ChunkIdArg,
        target_category: Annotated[str, Field(description="Target category name")],
    ) -> str:
        return run_tool(store.move_chunk, project, id, target_category)

    # ---- Search, export, import ----

    @mcp.tool(
        description="Search chunks by ID or text across the project (case-insensitive).",
        annotations=_READ_ONLY,
    )
    def search_chunks(
        project: ProjectArg,
        query: Annotated[str, Field(description="Text to look for in chunk IDs and text")],
    ) -> str:
        return run_tool(store.search_chunks, project, query)

    @mcp.tool(
        description=(
            "Export the project as a flat JSON array of {id, text, metadata}, ready for RAG. "
            "Optionally restrict to one category or save to <project>.export.json."
        ),
        annotations=_ADDITIVE,
    )
    def export_project(
        project: ProjectArg,
        category: Annotated[Optional[str], Field(description="Export only this category")] = None,
        save_to_file: Annotated[bool, Field(
            description="Save to a .export.json file in the data directory instead of returning data.",
        )] = False,
    ) -> str:
        return run_tool(export_payload, store, project, category, save_to_file)

    @mcp.tool(description="Export one category as a flat JSON array.", annotations=_READ_ONLY)
    def export_category(project: ProjectArg, category: CategoryArg) -> str:
        return run_tool(store.export_category, project, category)

    @mcp.tool(
        description=(
            "Import a JSON array [{id, text, metadata}, ...] into a project (created if missing). "
            "Entries with empty or duplicate IDs are skipped."
        ),
        annotations=_ADDITIVE,
    )
    def import_json(
        project: Annotated[str, Field(description="Project name (created if it doesn't exist)")],
        category: Annotated[Optional[str], Field(description="Target category (default: 'Imported')")] = None,
        json_path: Annotated[Optional[str], Field(description="Path to a JSON file to import")] = None,
        data: Annotated[Optional[list[dict[str, Any]]], Field(
            description="Or provide the JSON array directly",
        )] = None,
    ) -> str:
        return run_tool(import_payload, store, project, category, json_path, data)

    @mcp.tool(
        description="Set one metadata field on every chunk of a project or category.",
        annotations=_ADDITIVE,
    )
    def bulk_update_metadata(
        project: ProjectArg,
        field: Annotated[str, Field(description="Metadata field (page_title, source, license, or custom)")],
        value: Annotated[str, Field(description="Value to set")],
        category: Annotated[Optional[str], Field(description="Restrict to this category")] = None,
    ) -> str:
        return run_tool(store.bulk_update_metadata, project, field, value, category)

    @mcp.tool(
        description="Copy every chunk of the source project into the target project, skipping duplicate IDs.",
        annotations=_ADDITIVE,
    )
    def merge_projects(
        source: Annotated[str, Field(description="Project to copy from (unchanged)")],
        target: Annotated[str, Field(description="Project to copy into")],
    ) -> str:
        return run_tool(store.merge_projects, source, target)

    # ---- History ----

    @mcp.tool(description="List the project's commit history, newest first.", annotations=_READ_ONLY)
    def get_history(project: ProjectArg) -> str:
        return run_tool(store.get_history, project)

    @mcp.tool(
        description="Get one commit with its snapshot and the previous commit's snapshot.",
        annotations=_READ_ONLY,
    )
    def get_commit(
        project: ProjectArg,
        commit_id: Annotated[str, Field(description="Commit ID from get_history")],
    ) -> str:
        return run_tool(store.get_commit, project, commit_id)

    @mcp.tool(
        description="Restore the project to a commit's snapshot. The rollback is itself recorded.",
        annotations=_DESTRUCTIVE,
    )
    def rollback(
        project: ProjectArg,
        commit_id: Annotated[str, Field(description="Commit ID to restore")],
    ) -> str:
        return run_tool(store.rollback, project, commit_id)

    return mcp
