"""Tests for tryll CLI error messages."""

from __future__ import annotations

from tryll.cli.errors import (
    err_config,
    err_corrupt_document,
    err_project_not_found,
    err_store_error,
)
from tryll.store import (
    AlreadyExistsError,
    CorruptDocumentError,
    DuplicateChunkIdError,
    NotFoundError,
)


def test_project_not_found_has_action() -> None:
    msg = err_project_not_found("minecraft")
    assert "minecraft" in msg
    assert "tryll projects" in msg


def test_markup_in_names_is_escaped() -> None:
    assert "\\[bold]" in err_project_not_found("[bold]x")


def test_config_error_names_files() -> None:
    assert "tryll.yaml" in err_config("history.max_commits must be >= 1, got 0")


def test_corrupt_document_points_at_history() -> None:
    assert "tryll history list" in err_corrupt_document("Document 'x.json' is not valid JSON")


def test_store_error_project_not_found() -> None:
    msg = err_store_error(NotFoundError('Project "ghost" not found', entity="project"), "ghost")
    assert "tryll projects" in msg


def test_store_error_category_not_found_keeps_message() -> None:
    msg = err_store_error(
        NotFoundError('Category "Biomes" not found', entity="category"), "minecraft"
    )
    assert "Biomes" in msg
    assert "tryll projects" not in msg


def test_store_error_already_exists() -> None:
    assert "tryll delete" in err_store_error(AlreadyExistsError('Project "x" already exists'), "x")


def test_store_error_duplicate_chunk() -> None:
    msg = err_store_error(DuplicateChunkIdError('Chunk ID "a" already exists'))
    assert "unique within a project" in msg


def test_store_error_corrupt() -> None:
    assert "Fix the JSON" in err_store_error(CorruptDocumentError("bad"))


def test_store_error_maps_on_entity_not_message() -> None:
    exc = NotFoundError('Project "minecraft" has no chunk "ghast"', entity="chunk")
    msg = err_store_error(exc, "minecraft")
    assert "tryll projects" not in msg
    assert "ghast" in msg
