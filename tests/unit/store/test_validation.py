"""Tests for tryll.store.validation: names, folding, uniqueness."""

from __future__ import annotations

import pytest

from tryll.store.errors import InvalidNameError, NotFoundError
from tryll.store.models import Category, Chunk, Project
from tryll.store.validation import (
    category_name_taken,
    check_project_name,
    find_category,
    find_chunk,
    fold_name,
    is_id_taken,
    iter_chunks,
    lookup_category,
    sanitize_project_name,
)


def _project() -> Project:
    return Project(
        name="demo",
        categories=[
            Category(name="Mobs", chunks=[Chunk(id="creeper"), Chunk(id="zombie")]),
            Category(name="Items", chunks=[Chunk(id="Creeper")]),
        ],
    )


# ---------------------------------------------------------------------------
# Project names
# ---------------------------------------------------------------------------


def test_sanitize_strips_unsafe_characters() -> None:
    assert sanitize_project_name("My/Proj*") == "MyProj"


def test_sanitize_trims_whitespace() -> None:
    assert sanitize_project_name("  data set  ") == "data set"


def test_sanitize_keeps_dots_dashes_underscores() -> None:
    assert sanitize_project_name("mc_v1.2-beta") == "mc_v1.2-beta"


def test_sanitize_only_unsafe_is_empty() -> None:
    assert sanitize_project_name("***") == ""


def test_check_project_name_accepts_safe_name() -> None:
    assert check_project_name("minecraft") == "minecraft"


@pytest.mark.parametrize("name", ["", "   ", "../etc", "a/b", "x*", ".", ".."])
def test_check_project_name_rejects_unsafe(name: str) -> None:
    with pytest.raises(InvalidNameError):
        check_project_name(name)


@pytest.mark.parametrize("name", ["notes.history", "notes.export", "Notes.HISTORY"])
def test_check_project_name_rejects_reserved_suffix(name: str) -> None:
    with pytest.raises(InvalidNameError):
        check_project_name(name)


def test_check_project_name_rejects_non_string() -> None:
    with pytest.raises(InvalidNameError):
        check_project_name(None)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


def test_fold_name_is_case_insensitive() -> None:
    assert fold_name("MOBS") == fold_name("mobs")


def test_find_category_any_case() -> None:
    project = _project()
    assert find_category(project, "mobs").name == "Mobs"


def test_find_category_missing_raises() -> None:
    with pytest.raises(NotFoundError, match='Category "Biomes" not found') as excinfo:
        find_category(_project(), "Biomes")
    assert excinfo.value.entity == "category"


def test_lookup_category_missing_returns_none() -> None:
    assert lookup_category(_project(), "Biomes") is None


def test_category_name_taken_case_insensitive() -> None:
    assert category_name_taken(_project(), "ITEMS")


def test_category_name_taken_excludes_self() -> None:
    project = _project()
    mobs = project.categories[0]
    assert not category_name_taken(project, "MOBS", exclude_id=mobs.id)


# ---------------------------------------------------------------------------
# Chunk IDs
# ---------------------------------------------------------------------------


def test_is_id_taken_across_categories() -> None:
    assert is_id_taken(_project(), "zombie")


def test_is_id_taken_is_case_sensitive() -> None:
    project = _project()
    assert is_id_taken(project, "Creeper")
    assert not is_id_taken(project, "CREEPER")


def test_is_id_taken_excludes_uid() -> None:
    project = _project()
    zombie = project.categories[0].chunks[1]
    assert not is_id_taken(project, "zombie", exclude_uid=zombie.uid)


def test_find_chunk_returns_category() -> None:
    found = find_chunk(_project(), "Creeper")
    assert found is not None
    category, chunk = found
    assert category.name == "Items"
    assert chunk.id == "Creeper"


def test_find_chunk_missing_returns_none() -> None:
    assert find_chunk(_project(), "skeleton") is None


def test_iter_chunks_order() -> None:
    assert [c.id for _, c in iter_chunks(_project())] == ["creeper", "zombie", "Creeper"]
