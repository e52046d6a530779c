"""tryll export / import commands.

Usage:
  tryll export minecraft                         # JSON array to stdout
  tryll export minecraft --category Mobs --output mobs.json
  tryll export minecraft --save                  # <data_dir>/minecraft.export.json
  tryll import minecraft dump.json --category Imported
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.markup import escape

from tryll.cli.errors import err_import_file, warn_history_disabled
from tryll.cli.state import console, fail, open_store
from tryll.store import StoreError
from tryll.store.files import write_json


def export_cmd(
    ctx: typer.Context,
    project: Annotated[str, typer.Argument(help="Project name.")],
    category: Annotated[
        Optional[str],
        typer.Option("--category", "-c", help="Export only this category."),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write the JSON array to this file."),
    ] = None,
    save: Annotated[
        bool,
        typer.Option("--save", help="Write <project>.export.json into the data directory."),
    ] = False,
) -> None:
    """Export chunks as a flat JSON array of {id, text, metadata}."""
    store = open_store(ctx)
    try:
        if save:
            saved = store.export_to_file(project, category)
            console.print(f"[green]✓[/] Exported {saved['exported']} chunks to {escape(saved['saved_to'])}")
            return
        if category:
            records = store.export_category(project, category)
        else:
            records = store.export_project(project)
    except StoreError as exc:
        raise fail(exc, project) from exc

    if output is None:
        typer.echo(json.dumps(records, indent=2, ensure_ascii=False))
        return

    write_json(output, records)
    console.print(f"[green]✓[/] Exported {len(records)} chunks to {escape(str(output))}")


def import_cmd(
    ctx: typer.Context,
    project: Annotated[str, typer.Argument(help="Project name (created if it does not exist).")],
    file: Annotated[Path, typer.Argument(help="JSON file holding an array of {id, text, metadata}.")],
    category: Annotated[
        Optional[str],
        typer.Option("--category", "-c", help="Target category (default: Imported)."),
    ] = None,
) -> None:
    """Import a flat JSON array into a project. Duplicate or empty IDs are skipped."""
    try:
        records = json.loads(file.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        console.print(err_import_file(str(file), "File does not exist."))
        raise typer.Exit(1) from exc
    except (OSError, json.JSONDecodeError) as exc:
        console.print(err_import_file(str(file), str(exc)))
        raise typer.Exit(1) from exc

    store = open_store(ctx)
    try:
        result = store.import_json(project, records, category)
    except StoreError as exc:
        raise fail(exc, project) from exc

    console.print(
        f"[green]✓[/] Imported {result['imported']} chunks into "
        f"[bold]{escape(result['project'])}[/] / {escape(result['category'])}"
    )
    if result["skipped"]:
        console.print(f"  [yellow]{result['skipped']} skipped[/] (empty or duplicate IDs)")
    if not store.track_history:
        console.print(warn_history_disabled())
