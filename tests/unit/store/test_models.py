"""Tests for tryll.store.models: persisted layout and clones."""

from __future__ import annotations

import re

import pytest

from tryll.store.models import (
    DEFAULT_LICENSE,
    Category,
    Chunk,
    ChunkMetadata,
    Commit,
    CustomField,
    HistoryLog,
    Project,
    stringify,
    utc_now,
)


def test_stringify_values() -> None:
    assert stringify(None) == ""
    assert stringify(20) == "20"
    assert stringify(True) == "true"
    assert stringify(["a", "b"]) == '["a", "b"]'
    assert stringify("x") == "x"


def test_utc_now_format() -> None:
    assert re.fullmatch(r"\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{3}Z", utc_now())


def test_metadata_defaults_license() -> None:
    assert ChunkMetadata().license == DEFAULT_LICENSE
    assert ChunkMetadata.from_dict({"page_title": "T"}).license == DEFAULT_LICENSE


def test_metadata_keeps_blank_license() -> None:
    assert ChunkMetadata.from_dict({"license": ""}).license == ""


def test_metadata_from_missing_dict_has_all_fields() -> None:
    meta = ChunkMetadata.from_dict(None)
    assert meta.to_dict() == {"page_title": "", "source": "", "license": DEFAULT_LICENSE}


def test_metadata_set_rejects_custom_key() -> None:
    with pytest.raises(KeyError):
        ChunkMetadata().set("hp", "20")


def test_chunk_to_dict_uses_persisted_keys() -> None:
    chunk = Chunk(id="creeper", text="boom", custom_fields=[CustomField("hp", "20")])
    data = chunk.to_dict()
    assert data["_uid"] == chunk.uid
    assert data["customFields"] == [{"key": "hp", "value": "20"}]
    assert set(data) == {"_uid", "id", "text", "metadata", "customFields"}


def test_chunk_from_dict_without_uid_assigns_one() -> None:
    chunk = Chunk.from_dict({"id": "creeper", "text": "boom"})
    assert chunk.uid
    assert chunk.metadata.license == DEFAULT_LICENSE
    assert chunk.custom_fields == []


def test_chunk_clone_is_independent() -> None:
    chunk = Chunk(id="creeper", custom_fields=[CustomField("hp", "20")])
    copy = chunk.clone()
    copy.custom_fields[0].value = "40"
    copy.metadata.source = "changed"
    assert chunk.custom_fields[0].value == "20"
    assert chunk.metadata.source == ""
    assert copy.uid == chunk.uid


def test_chunk_clone_new_uid() -> None:
    chunk = Chunk(id="creeper")
    assert chunk.clone(new_uid=True).uid != chunk.uid


def test_project_to_dict_round_layout() -> None:
    project = Project(name="demo", categories=[Category(name="Mobs", chunks=[Chunk(id="a")])])
    data = project.to_dict()
    assert data["createdAt"] == project.created_at
    assert data["categories"][0]["name"] == "Mobs"
    assert Project.from_dict(data) == project


def test_project_from_dict_requires_category_list() -> None:
    with pytest.raises(TypeError):
        Project.from_dict({"name": "demo", "categories": "oops"})


def test_project_clone_deep() -> None:
    project = Project(name="demo", categories=[Category(name="Mobs", chunks=[Chunk(id="a")])])
    copy = project.clone()
    copy.categories[0].chunks.append(Chunk(id="b"))
    assert project.chunk_count == 1
    assert copy.chunk_count == 2


def test_commit_to_dict_without_snapshot() -> None:
    commit = Commit(action="add_chunk", summary="Added", snapshot=Project(name="demo"))
    data = commit.to_dict(include_snapshot=False)
    assert "snapshot" not in data
    assert data["source"] == "mcp"
    assert data["stats"] == {"categories": 0, "chunks": 0}


def test_history_log_from_dict() -> None:
    commit = Commit(action="a", summary="s", snapshot=Project(name="demo"))
    log = HistoryLog.from_dict({"project": "demo", "commits": [commit.to_dict()]})
    assert log.commits[0].id == commit.id
    assert log.commits[0].snapshot.name == "demo"
