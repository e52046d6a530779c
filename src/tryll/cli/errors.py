"""Tryll rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from tryll.cli.errors import err_project_not_found
    console.print(err_project_not_found("minecraft"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from rich.markup import escape

from tryll.store import (
    AlreadyExistsError,
    CorruptDocumentError,
    DuplicateCategoryError,
    DuplicateChunkIdError,
    InvalidNameError,
    NotFoundError,
    StoreError,
)


def err_project_not_found(name: str) -> str:
    """Project document does not exist in the data directory."""
    return (
        f"[red]Error:[/] Project '{escape(name)}' not found.\n"
        "  Run:  tryll projects  to see all projects."
    )


def err_project_exists(name: str) -> str:
    return (
        f"[red]Error:[/] Project '{escape(name)}' already exists.\n"
        "  Choose another name, or remove it first:  tryll delete <name>"
    )


def err_invalid_name(message: str) -> str:
    return (
        f"[red]Error:[/] {escape(message)}.\n"
        "  Project names may use letters, digits, spaces, '_', '-' and '.'."
    )


def err_corrupt_document(message: str) -> str:
    """A project or history document on disk cannot be parsed."""
    return (
        f"[red]Error:[/] {escape(message)}\n"
        "  Fix the JSON by hand, or restore a snapshot:  tryll history list <project>"
    )


def err_config(message: str) -> str:
    """tryll.yaml or ~/.tryll/config.yaml contains an invalid value."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {escape(message)}\n"
        "  Fix tryll.yaml (or ~/.tryll/config.yaml) and retry."
    )


def err_import_file(path: str, reason: str) -> str:
    return (
        f"[red]Error:[/] Cannot read import file '{escape(path)}'.\n"
        f"  {escape(reason)}\n"
        "  The file must contain a JSON array: [{\"id\": ..., \"text\": ..., \"metadata\": {...}}]"
    )


def err_store_error(exc: StoreError, project: str | None = None) -> str:
    """Map a store failure to the matching actionable message."""
    if isinstance(exc, NotFoundError) and exc.entity == "project" and project:
        return err_project_not_found(project)
    if isinstance(exc, AlreadyExistsError) and project:
        return err_project_exists(project)
    if isinstance(exc, InvalidNameError):
        return err_invalid_name(str(exc))
    if isinstance(exc, CorruptDocumentError):
        return err_corrupt_document(str(exc))
    if isinstance(exc, (DuplicateCategoryError, DuplicateChunkIdError)):
        return (
            f"[red]Error:[/] {escape(str(exc))}\n"
            "  Names must be unique within a project."
        )
    return f"[red]Error:[/] {escape(str(exc))}"


def warn_history_disabled() -> str:
    return (
        "[yellow]Warning:[/] History tracking is disabled (history.enabled: false).\n"
        "  This change was not recorded and cannot be rolled back."
    )


def warn_history_not_tracked() -> str:
    return (
        "[yellow]Warning:[/] History tracking is disabled (history.enabled: false).\n"
        "  New changes are not recorded; earlier commits are still listed."
    )
