"""Tryll CLI entry point."""

from __future__ import annotations

import importlib.metadata
from pathlib import Path
from typing import Annotated, Optional

import typer

from tryll.cli.history import history_app
from tryll.cli.init import init_cmd
from tryll.cli.projects import create_cmd, delete_cmd, projects_cmd, search_cmd, stats_cmd
from tryll.cli.serve import serve_cmd
from tryll.cli.state import CliState
from tryll.cli.transfer import export_cmd, import_cmd
from tryll.logging_config import enable_debug_mode

_DIST_NAME = "tryll-dataset-builder"


def _installed_version() -> str:
    try:
        return importlib.metadata.version(_DIST_NAME)
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"tryll {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="tryll",
    help=(
        "Tryll Dataset Builder — knowledge-chunk datasets for RAG.\n\n"
        "  tryll init      Write the global config and create the data directory.\n"
        "  tryll serve     MCP server for agents (stdio).\n"
        "  tryll projects  Inspect, import and export datasets from the shell."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    data_dir: Annotated[
        Optional[Path],
        typer.Option("--data-dir", "-d", help="Directory holding project files (overrides config)."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Debug logging to stderr."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """Tryll Dataset Builder — knowledge-chunk datasets for RAG."""
    if verbose:
        enable_debug_mode()
    ctx.obj = CliState(data_dir=data_dir, verbose=verbose)


app.command("init")(init_cmd)
app.command("projects")(projects_cmd)
app.command("create")(create_cmd)
app.command("delete")(delete_cmd)
app.command("stats")(stats_cmd)
app.command("search")(search_cmd)
app.command("export")(export_cmd)
app.command("import")(import_cmd)
app.command("serve")(serve_cmd)
app.add_typer(history_app, name="history")


@app.command("version")
def version_cmd() -> None:
    """Show the installed Tryll version."""
    typer.echo(f"tryll {_installed_version()}")


if __name__ == "__main__":
    app()
