"""tryll history commands.

Commands:
  tryll history list <project>                — commits, newest first
  tryll history show <project> <commit>       — one commit and its snapshot
  tryll history rollback <project> <commit>   — restore a snapshot (recorded as a commit)

Commit IDs may be abbreviated to any unique prefix, as shown by ``list``.
"""

from __future__ import annotations

import json
from typing import Annotated, Any

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from tryll.cli.errors import warn_history_disabled, warn_history_not_tracked
from tryll.cli.state import console, fail, open_store
from tryll.store import Store, StoreError

history_app = typer.Typer(
    name="history",
    help="Inspect and restore project history (list, show, rollback).",
    add_completion=False,
)

_SHORT_ID = 8


def _resolve_commit(store: Store, project: str, commit: str) -> dict[str, Any]:
    """Find the commit whose ID equals or starts with *commit*."""
    try:
        commits = store.get_history(project)
    except StoreError as exc:
        raise fail(exc, project) from exc

    matches = [c for c in commits if c["id"] == commit] or [
        c for c in commits if c["id"].startswith(commit)
    ]
    if len(matches) != 1:
        reason = "not found" if not matches else "is ambiguous"
        console.print(
            f"[red]Error:[/] Commit '{escape(commit)}' {reason} in '{escape(project)}'.\n"
            f"  Run:  tryll history list {escape(project)}"
        )
        raise typer.Exit(1)
    return matches[0]


@history_app.command("list")
def history_list_cmd(
    ctx: typer.Context,
    project: Annotated[str, typer.Argument(help="Project name.")],
) -> None:
    """List a project's commits, newest first."""
    store = open_store(ctx)
    if not store.track_history:
        console.print(warn_history_not_tracked())
    try:
        commits = store.get_history(project)
    except StoreError as exc:
        raise fail(exc, project) from exc

    if not commits:
        console.print(f"[yellow]No history recorded for[/] '{escape(project)}'.")
        raise typer.Exit(0)

    table = Table(title=f"History: {escape(project)}", show_header=True, header_style="bold")
    table.add_column("Commit", style="bold", no_wrap=True, min_width=_SHORT_ID)
    table.add_column("When")
    table.add_column("Source")
    table.add_column("Summary")
    table.add_column("Cats", justify="right")
    table.add_column("Chunks", justify="right")

    for c in commits:
        table.add_row(
            c["id"][:_SHORT_ID],
            c["timestamp"],
            c["source"],
            escape(c["summary"]),
            str(c["stats"]["categories"]),
            str(c["stats"]["chunks"]),
        )

    console.print(table)


@history_app.command("show")
def history_show_cmd(
    ctx: typer.Context,
    project: Annotated[str, typer.Argument(help="Project name.")],
    commit: Annotated[str, typer.Argument(help="Commit ID or unique prefix.")],
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the full commit (with snapshots) as JSON."),
    ] = False,
) -> None:
    """Show one commit: what changed and the project it captured."""
    store = open_store(ctx)
    entry = _resolve_commit(store, project, commit)
    try:
        detail = store.get_commit(project, entry["id"])
    except StoreError as exc:
        raise fail(exc, project) from exc

    if as_json:
        typer.echo(json.dumps(detail, indent=2, ensure_ascii=False))
        return

    snapshot = detail["snapshot"]
    lines = [
        f"Commit:  {detail['id']}",
        f"When:    {detail['timestamp']}  ({detail['source']})",
        f"Action:  {escape(detail['action'])}",
        f"Summary: {escape(detail['summary'])}",
        "",
    ]
    for cat in snapshot["categories"]:
        lines.append(f"  • {escape(cat['name'])} ({len(cat['chunks'])} chunks)")
    if detail["prev_snapshot"] is None:
        lines.append("\n[dim]Oldest retained commit.[/]")

    console.print(Panel("\n".join(lines), title=f"[bold]{escape(project)}[/]", expand=False))


@history_app.command("rollback")
def history_rollback_cmd(
    ctx: typer.Context,
    project: Annotated[str, typer.Argument(help="Project name.")],
    commit: Annotated[str, typer.Argument(help="Commit ID or unique prefix.")],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Restore the project to a commit's snapshot."""
    store = open_store(ctx)
    entry = _resolve_commit(store, project, commit)

    console.print(f"\nRoll back [bold]{escape(project)}[/] to {entry['timestamp']}")
    console.print(f"  {escape(entry['summary'])}")

    if not yes:
        if not typer.confirm("Confirm rollback?", default=False):
            console.print("[dim]Cancelled.[/]")
            raise typer.Exit(0)

    try:
        restored = store.rollback(project, entry["id"])
    except StoreError as exc:
        raise fail(exc, project) from exc

    chunks = sum(len(c["chunks"]) for c in restored["categories"])
    console.print(
        f"\n[green]✓[/] Rolled back: {len(restored['categories'])} categories, {chunks} chunks"
    )
    if not store.track_history:
        console.print(warn_history_disabled())
