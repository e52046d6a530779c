"""Conversion between stored chunks and flat RAG-ready records.

Record shape (export output, import input):

    {"id": "creeper", "text": "...",
     "metadata": {"page_title": "...", "source": "...", "license": "...", "<custom>": "..."}}

Collision policy: on export, custom fields are applied after the standard
fields, so a custom key named like a standard field overrides it.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from tryll.store.models import (
    DEFAULT_LICENSE,
    STANDARD_FIELDS,
    Chunk,
    ChunkMetadata,
    CustomField,
    stringify,
)


def parse_custom_fields(metadata: Any) -> list[CustomField]:
    """Every non-standard metadata key as an ordered custom field."""
    if not isinstance(metadata, Mapping):
        return []
    return [
        CustomField(key=str(key), value=stringify(value))
        for key, value in metadata.items()
        if key not in STANDARD_FIELDS
    ]


def _first_filled(*values: Any, default: str = "") -> str:
    for value in values:
        text = stringify(value)
        if text:
            return text
    return default


def clean_id(value: Any) -> str:
    return stringify(value).strip()


def chunk_from_spec(spec: Mapping[str, Any], default_license: str = DEFAULT_LICENSE) -> Chunk:
    """Build a chunk from an add/bulk-add spec.

    Top-level ``page_title`` / ``source`` / ``license`` keys take precedence
    over the same keys inside ``metadata``. The ID is expected to be validated
    by the caller.
    """
    meta = spec.get("metadata")
    meta = meta if isinstance(meta, Mapping) else {}
    return Chunk(
        id=clean_id(spec.get("id")),
        text=stringify(spec.get("text")),
        metadata=ChunkMetadata(
            page_title=_first_filled(spec.get("page_title"), meta.get("page_title")),
            source=_first_filled(spec.get("source"), meta.get("source")),
            license=_first_filled(spec.get("license"), meta.get("license"), default=default_license),
        ),
        custom_fields=parse_custom_fields(meta),
    )


def chunk_from_record(record: Mapping[str, Any], default_license: str = DEFAULT_LICENSE) -> Chunk:
    """Build a chunk from an exported record (import path)."""
    meta = record.get("metadata")
    meta = meta if isinstance(meta, Mapping) else {}
    return Chunk(
        id=clean_id(record.get("id")),
        text=stringify(record.get("text")),
        metadata=ChunkMetadata(
            page_title=_first_filled(meta.get("page_title")),
            source=_first_filled(meta.get("source")),
            license=_first_filled(meta.get("license"), default=default_license),
        ),
        custom_fields=parse_custom_fields(meta),
    )


def export_record(chunk: Chunk) -> dict[str, Any]:
    metadata = chunk.metadata.to_dict()
    for custom in chunk.custom_fields:
        key = custom.key.strip() if custom.key else ""
        if key:
            metadata[key] = stringify(custom.value)
    return {"id": chunk.id, "text": chunk.text, "metadata": metadata}


def export_chunks(chunks: Iterable[Chunk]) -> list[dict[str, Any]]:
    return [export_record(chunk) for chunk in chunks]
