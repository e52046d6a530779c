"""tryll project commands.

Commands:
  tryll projects                  — list projects with category / chunk counts
  tryll create <name>             — create an empty project
  tryll delete <name> [--yes]     — permanently delete a project
  tryll stats <name>              — text-length statistics for a project
  tryll search <project> <query>  — case-insensitive search over IDs and text
"""

from __future__ import annotations

from typing import Annotated

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from tryll.cli.errors import warn_history_disabled
from tryll.cli.state import console, fail, open_store
from tryll.store import StoreError


def projects_cmd(ctx: typer.Context) -> None:
    """List all projects in the data directory."""
    store = open_store(ctx)
    projects = store.list_projects()

    if not projects:
        console.print(
            f"[yellow]No projects found in {escape(str(store.data_dir))}.[/]\n"
            "  Create one:  tryll create <name>"
        )
        raise typer.Exit(0)

    table = Table(title="Projects", show_header=True, header_style="bold")
    table.add_column("Name", style="bold")
    table.add_column("Categories", justify="right")
    table.add_column("Chunks", justify="right")
    table.add_column("Created")

    for p in projects:
        table.add_row(escape(p["name"]), str(p["categories"]), str(p["chunks"]), p["created_at"] or "")

    console.print(table)


def create_cmd(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Project name (used as the file name).")],
) -> None:
    """Create a new, empty project."""
    store = open_store(ctx)
    try:
        project = store.create_project(name)
    except StoreError as exc:
        raise fail(exc, name) from exc
    console.print(f"[green]✓[/] Created project: [bold]{escape(project['name'])}[/]")
    if not store.track_history:
        console.print(warn_history_disabled())


def delete_cmd(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Project to delete.")],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Permanently delete a project and all its chunks."""
    store = open_store(ctx)
    try:
        stats = store.get_stats(name)
    except StoreError as exc:
        raise fail(exc, name) from exc

    console.print(f"\nDelete project: [bold]{escape(name)}[/]")
    console.print(f"  Categories: {stats['categories']}  |  Chunks: {stats['total_chunks']}")

    if not yes:
        if not typer.confirm("Confirm deletion?", default=False):
            console.print("[dim]Cancelled.[/]")
            raise typer.Exit(0)

    try:
        store.delete_project(name)
    except StoreError as exc:
        raise fail(exc, name) from exc
    console.print(f"\n[green]✓[/] Deleted: {escape(name)}")


def stats_cmd(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Project name.")],
) -> None:
    """Show categories and text-length statistics for a project."""
    store = open_store(ctx)
    try:
        stats = store.get_stats(name)
    except StoreError as exc:
        raise fail(exc, name) from exc

    lines = [
        f"Categories:     {stats['categories']}",
        f"Total chunks:   {stats['total_chunks']}",
        f"Average length: {stats['avg_text_length']}",
        f"Longest chunk:  {stats['longest_chunk']}",
        f"Shortest chunk: {stats['shortest_chunk']}",
        f"Created:        {stats['created_at'] or '-'}",
    ]
    if stats["category_names"]:
        lines.append("")
        lines.extend(f"  • {escape(entry)}" for entry in stats["category_names"])

    console.print(Panel("\n".join(lines), title=f"[bold]{escape(name)}[/]", expand=False))


def search_cmd(
    ctx: typer.Context,
    project: Annotated[str, typer.Argument(help="Project name.")],
    query: Annotated[str, typer.Argument(help="Text to look for in chunk IDs and text.")],
) -> None:
    """Search chunks by ID or text (case-insensitive)."""
    store = open_store(ctx)
    try:
        found = store.search_chunks(project, query)
    except StoreError as exc:
        raise fail(exc, project) from exc

    if not found["results"]:
        console.print(f"[yellow]No chunks match[/] '{escape(query)}'.")
        raise typer.Exit(0)

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", style="bold")
    table.add_column("Category")
    table.add_column("Preview")
    for hit in found["results"]:
        table.add_row(escape(hit["id"]), escape(hit["category"]), escape(hit["preview"]))

    console.print(table)
    console.print(f"\n  {found['found']} match(es)")
