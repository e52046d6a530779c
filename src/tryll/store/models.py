"""Domain models for the Tryll document store.

Each model converts to and from the persisted JSON layout with explicit
``to_dict()`` / ``from_dict()`` methods. Persisted keys keep the layout shared
with the Dataset Builder web app (``createdAt``, ``customFields``, ``_uid``).

Deep copies are explicit ``clone()`` methods over these types; nothing relies
on a serialise/parse round trip.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

DEFAULT_LICENSE: str = "CC BY-NC-SA 3.0"
STANDARD_FIELDS: tuple[str, ...] = ("page_title", "source", "license")


def new_uuid() -> str:
    return str(uuid.uuid4())


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def stringify(value: Any) -> str:
    """Coerce a metadata value to a string. ``None`` becomes ``""``."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


@dataclass
class CustomField:
    key: str
    value: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"key": self.key, "value": self.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CustomField:
        return cls(key=str(data.get("key", "")), value=stringify(data.get("value")))


@dataclass
class ChunkMetadata:
    """The three standard metadata fields, always present."""

    page_title: str = ""
    source: str = ""
    license: str = DEFAULT_LICENSE

    def to_dict(self) -> dict[str, str]:
        return {"page_title": self.page_title, "source": self.source, "license": self.license}

    def set(self, name: str, value: str) -> None:
        if name not in STANDARD_FIELDS:
            raise KeyError(name)
        setattr(self, name, value)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ChunkMetadata:
        data = data or {}
        return cls(
            page_title=stringify(data.get("page_title")),
            source=stringify(data.get("source")),
            license=stringify(data.get("license", DEFAULT_LICENSE)),
        )


@dataclass
class Chunk:
    """A knowledge entry. ``id`` is caller-facing and project-unique; ``uid`` is internal."""

    id: str
    text: str = ""
    metadata: ChunkMetadata = field(default_factory=ChunkMetadata)
    custom_fields: list[CustomField] = field(default_factory=list)
    uid: str = field(default_factory=new_uuid)

    def clone(self, *, new_uid: bool = False) -> Chunk:
        return Chunk(
            id=self.id,
            text=self.text,
            metadata=ChunkMetadata(
                page_title=self.metadata.page_title,
                source=self.metadata.source,
                license=self.metadata.license,
            ),
            custom_fields=[CustomField(f.key, f.value) for f in self.custom_fields],
            uid=new_uuid() if new_uid else self.uid,
        )

    def get_custom(self, key: str) -> CustomField | None:
        for custom in self.custom_fields:
            if custom.key == key:
                return custom
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "_uid": self.uid,
            "id": self.id,
            "text": self.text,
            "metadata": self.metadata.to_dict(),
            "customFields": [f.to_dict() for f in self.custom_fields],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Chunk:
        return cls(
            uid=str(data.get("_uid") or new_uuid()),
            id=str(data["id"]),
            text=stringify(data.get("text")),
            metadata=ChunkMetadata.from_dict(data.get("metadata")),
            custom_fields=[CustomField.from_dict(f) for f in data.get("customFields") or []],
        )


@dataclass
class Category:
    name: str
    chunks: list[Chunk] = field(default_factory=list)
    id: str = field(default_factory=new_uuid)

    def clone(self) -> Category:
        return Category(id=self.id, name=self.name, chunks=[c.clone() for c in self.chunks])

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "chunks": [c.to_dict() for c in self.chunks],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Category:
        return cls(
            id=str(data.get("id") or new_uuid()),
            name=str(data["name"]),
            chunks=[Chunk.from_dict(c) for c in data.get("chunks") or []],
        )


@dataclass
class Project:
    """Top-level dataset container; ``name`` is also the storage key."""

    name: str
    created_at: str | None = field(default_factory=utc_now)
    categories: list[Category] = field(default_factory=list)

    @property
    def chunk_count(self) -> int:
        return sum(len(c.chunks) for c in self.categories)

    def clone(self) -> Project:
        return Project(
            name=self.name,
            created_at=self.created_at,
            categories=[c.clone() for c in self.categories],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "createdAt": self.created_at,
            "categories": [c.to_dict() for c in self.categories],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Project:
        categories = data.get("categories")
        if not isinstance(categories, list):
            raise TypeError("'categories' must be a list")
        return cls(
            name=str(data["name"]),
            created_at=data.get("createdAt"),
            categories=[Category.from_dict(c) for c in categories],
        )


@dataclass
class CommitStats:
    categories: int = 0
    chunks: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"categories": self.categories, "chunks": self.chunks}


@dataclass
class Commit:
    """One history entry: descriptive fields plus a full project snapshot."""

    action: str
    summary: str
    snapshot: Project
    source: str = "mcp"
    stats: CommitStats = field(default_factory=CommitStats)
    timestamp: str = field(default_factory=utc_now)
    id: str = field(default_factory=new_uuid)

    def to_dict(self, *, include_snapshot: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "source": self.source,
            "action": self.action,
            "summary": self.summary,
            "stats": self.stats.to_dict(),
        }
        if include_snapshot:
            data["snapshot"] = self.snapshot.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Commit:
        stats = data.get("stats") or {}
        return cls(
            id=str(data["id"]),
            timestamp=str(data.get("timestamp", "")),
            source=str(data.get("source", "mcp")),
            action=str(data.get("action", "")),
            summary=str(data.get("summary", "")),
            stats=CommitStats(
                categories=int(stats.get("categories", 0)),
                chunks=int(stats.get("chunks", 0)),
            ),
            snapshot=Project.from_dict(data["snapshot"]),
        )


@dataclass
class HistoryLog:
    """Newest-first commit sequence for one project."""

    project: str
    commits: list[Commit] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"project": self.project, "commits": [c.to_dict() for c in self.commits]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoryLog:
        commits = data.get("commits")
        if not isinstance(commits, list):
            raise TypeError("'commits' must be a list")
        return cls(
            project=str(data.get("project", "")),
            commits=[Commit.from_dict(c) for c in commits],
        )
