"""Store facade: every project, category, chunk, transfer, and history operation.

Each operation is one load → mutate → save cycle over the project's JSON
document, run while holding that project's lock. Single-entity mutators
validate fully before saving, so a failed call never persists partial state.
Batch operations (bulk add, import) report per-entry failures as counts.

After each successful mutation a commit is recorded in the project's history
(best effort, see ``tryll.store.history``).

Writers in other processes are not coordinated: concurrent writes to the same
project from two processes race and the last write wins.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Mapping, Sequence
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from tryll.store.errors import (
    AlreadyExistsError,
    AlreadyInCategoryError,
    DuplicateCategoryError,
    DuplicateChunkIdError,
    EmptyIdError,
    EmptyNameError,
    InvalidInputError,
    InvalidNameError,
    NotFoundError,
    StoreError,
)
from tryll.store.files import ProjectFiles
from tryll.store.history import MAX_HISTORY, HistoryLedger, check_source
from tryll.store.models import (
    DEFAULT_LICENSE,
    STANDARD_FIELDS,
    Category,
    CustomField,
    Project,
    stringify,
)
from tryll.store.transfer import (
    chunk_from_record,
    chunk_from_spec,
    clean_id,
    export_chunks,
    parse_custom_fields,
)
from tryll.store.validation import (
    category_name_taken,
    check_project_name,
    find_category,
    find_chunk,
    is_id_taken,
    iter_chunks,
    lookup_category,
    sanitize_project_name,
)

if TYPE_CHECKING:
    from tryll.config import TryllConfig

logger = logging.getLogger(__name__)

PREVIEW_LENGTH: int = 120
DEFAULT_IMPORT_CATEGORY: str = "Imported"


class Store:
    """Local file-backed document store for knowledge-chunk datasets.

    All methods take plain data and return plain, JSON-serialisable data, or
    raise a ``StoreError`` subclass.
    """

    def __init__(
        self,
        data_dir: Path | str,
        *,
        default_license: str = DEFAULT_LICENSE,
        max_history: int = MAX_HISTORY,
        preview_length: int = PREVIEW_LENGTH,
        source: str = "mcp",
        track_history: bool = True,
    ) -> None:
        """Initialise the store over *data_dir*.

        Args:
            data_dir: Directory holding the project documents.
            default_license: License applied when a chunk has none.
            max_history: Number of commits retained per project.
            preview_length: Characters of text shown in search previews.
            source: Commit source recorded for mutations made through this store.
            track_history: Record a commit after every mutation.
        """
        self.files = ProjectFiles(data_dir)
        self.history = HistoryLedger(self.files, max_commits=max_history)
        self.default_license = default_license
        self.preview_length = preview_length
        self.source = check_source(source)
        self.track_history = track_history
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    @classmethod
    def from_config(cls, cfg: TryllConfig, *, source: str | None = None) -> Store:
        return cls(
            cfg.storage.data_dir,
            default_license=cfg.chunks.default_license,
            max_history=cfg.history.max_commits,
            preview_length=cfg.chunks.preview_length,
            source=source or cfg.history.source,
            track_history=cfg.history.enabled,
        )

    @property
    def data_dir(self) -> Path:
        return self.files.data_dir

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    def _lock_for(self, name: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = self._locks[name] = threading.RLock()
            return lock

    @contextmanager
    def _locked(self, *names: str) -> Iterator[None]:
        """Hold the locks of every named project (sorted order, no deadlock)."""
        with ExitStack() as stack:
            for name in sorted(set(names)):
                stack.enter_context(self._lock_for(name))
            yield

    def _commit(self, name: str, action: str, summary: str) -> None:
        logger.info("%s: %s", name, summary)
        if self.track_history:
            self.history.record(name, action, summary, self.source)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def list_projects(self) -> list[dict[str, Any]]:
        """Every project with category / chunk counts."""
        projects = []
        for name in self.files.list_names():
            try:
                project = self.files.load(name)
            except StoreError as exc:
                logger.warning("Skipping unreadable project %s: %s", name, exc)
                projects.append({"name": name, "categories": 0, "chunks": 0, "created_at": None})
                continue
            projects.append(
                {
                    "name": name,
                    "categories": len(project.categories),
                    "chunks": project.chunk_count,
                    "created_at": project.created_at,
                }
            )
        return projects

    def create_project(self, name: str) -> dict[str, Any]:
        """Create an empty project. The name is sanitised first.

        Raises:
            InvalidNameError: If nothing is left after sanitisation.
            AlreadyExistsError: If a project with the sanitised name exists.
        """
        safe = sanitize_project_name(name if isinstance(name, str) else "")
        if not safe:
            raise InvalidNameError("Invalid project name")
        check_project_name(safe)
        with self._locked(safe):
            if self.files.exists(safe):
                raise AlreadyExistsError(f'Project "{safe}" already exists')
            project = Project(name=safe)
            self.files.save(project)
            self._commit(safe, "create_project", f'Created project "{safe}"')
        return project.to_dict()

    def delete_project(self, name: str) -> dict[str, str]:
        """Delete the project document. Its history document is kept."""
        with self._locked(name):
            self.files.delete(name)
        logger.info("%s: deleted project", name)
        return {"deleted": name}

    def get_stats(self, name: str) -> dict[str, Any]:
        project = self.files.load(name)
        lengths = [len(chunk.text) for _, chunk in iter_chunks(project)]
        total = len(lengths)
        return {
            "project": name,
            "categories": len(project.categories),
            "category_names": [f"{c.name} ({len(c.chunks)} chunks)" for c in project.categories],
            "total_chunks": total,
            "avg_text_length": int(sum(lengths) / total + 0.5) if total else 0,
            "longest_chunk": max(lengths) if total else 0,
            "shortest_chunk": min(lengths) if total else 0,
            "created_at": project.created_at,
        }

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def list_categories(self, project_name: str) -> list[dict[str, Any]]:
        project = self.files.load(project_name)
        return [{"name": c.name, "chunks": len(c.chunks)} for c in project.categories]

    def create_category(self, project_name: str, name: str) -> dict[str, Any]:
        with self._locked(project_name):
            project = self.files.load(project_name)
            trimmed = (name or "").strip()
            if not trimmed:
                raise EmptyNameError("Category name cannot be empty")
            if category_name_taken(project, trimmed):
                raise DuplicateCategoryError(
                    f'Category "{trimmed}" already exists in project "{project_name}"'
                )
            category = Category(name=trimmed)
            project.categories.append(category)
            self.files.save(project, project_name)
            self._commit(project_name, "create_category", f'Created category "{trimmed}"')
        return category.to_dict()

    def rename_category(self, project_name: str, old_name: str, new_name: str) -> dict[str, str]:
        """Rename a category; renaming to its own name (any case) is allowed."""
        with self._locked(project_name):
            project = self.files.load(project_name)
            category = find_category(project, old_name)
            trimmed = (new_name or "").strip()
            if not trimmed:
                raise EmptyNameError("New name cannot be empty")
            if category_name_taken(project, trimmed, exclude_id=category.id):
                raise DuplicateCategoryError(f'Category "{trimmed}" already exists')
            previous = category.name
            category.name = trimmed
            self.files.save(project, project_name)
            self._commit(
                project_name, "rename_category", f'Renamed category "{previous}" to "{trimmed}"'
            )
        return {"old": old_name, "new": trimmed}

    def delete_category(self, project_name: str, name: str) -> dict[str, Any]:
        """Delete a category together with all of its chunks."""
        with self._locked(project_name):
            project = self.files.load(project_name)
            category = find_category(project, name)
            project.categories.remove(category)
            self.files.save(project, project_name)
            self._commit(
                project_name,
                "delete_category",
                f'Deleted category "{category.name}" ({len(category.chunks)} chunks)',
            )
        return {"deleted": category.name, "chunks_removed": len(category.chunks)}

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    def add_chunk(self, project_name: str, category_name: str, chunk: Mapping[str, Any]) -> dict[str, str]:
        """Add one chunk ``{id, text, metadata}`` to a category.

        Raises:
            NotFoundError: Project or category missing.
            EmptyIdError: Blank chunk ID.
            DuplicateChunkIdError: ID already used anywhere in the project.
        """
        if not isinstance(chunk, Mapping):
            raise InvalidInputError("Chunk must be an object with id and text")
        with self._locked(project_name):
            project = self.files.load(project_name)
            category = find_category(project, category_name)
            new_chunk = chunk_from_spec(chunk, self.default_license)
            if not new_chunk.id:
                raise EmptyIdError("Chunk ID is required")
            if is_id_taken(project, new_chunk.id):
                raise DuplicateChunkIdError(
                    f'Chunk ID "{new_chunk.id}" already exists in this project. '
                    "Try adding _1, _2 suffix."
                )
            category.chunks.append(new_chunk)
            self.files.save(project, project_name)
            self._commit(
                project_name, "add_chunk", f'Added chunk "{new_chunk.id}" to "{category.name}"'
            )
        return {"id": new_chunk.id, "category": category.name}

    def bulk_add_chunks(
        self, project_name: str, category_name: str, chunks: Sequence[Mapping[str, Any]]
    ) -> dict[str, Any]:
        """Add many chunks; invalid entries are skipped and reported, never fatal."""
        if not isinstance(chunks, (list, tuple)):
            raise InvalidInputError("Chunks must be a list")
        with self._locked(project_name):
            project = self.files.load(project_name)
            category = find_category(project, category_name)
            added: list[str] = []
            errors: list[dict[str, str]] = []

            for spec in chunks:
                if not isinstance(spec, Mapping):
                    errors.append({"id": "(invalid)", "reason": "Entry must be an object"})
                    continue
                new_chunk = chunk_from_spec(spec, self.default_license)
                if not new_chunk.id:
                    errors.append({"id": "(empty)", "reason": "ID is required"})
                    continue
                if is_id_taken(project, new_chunk.id):
                    errors.append({"id": new_chunk.id, "reason": "Duplicate ID"})
                    continue
                category.chunks.append(new_chunk)
                added.append(new_chunk.id)

            self.files.save(project, project_name)
            self._commit(
                project_name,
                "bulk_add_chunks",
                f'Added {len(added)} chunks to "{category.name}" ({len(errors)} skipped)',
            )

        result: dict[str, Any] = {"added": len(added), "errors": len(errors), "ids": added}
        if errors:
            result["details"] = errors
        return result

    def get_chunk(self, project_name: str, chunk_id: str) -> dict[str, Any]:
        project = self.files.load(project_name)
        found = find_chunk(project, chunk_id)
        if found is None:
            raise NotFoundError(
                f'Chunk "{chunk_id}" not found in project "{project_name}"', entity="chunk"
            )
        category, chunk = found
        return {
            "id": chunk.id,
            "text": chunk.text,
            "metadata": chunk.metadata.to_dict(),
            "custom_fields": [f.to_dict() for f in chunk.custom_fields],
            "category": category.name,
        }

    def update_chunk(
        self,
        project_name: str,
        chunk_id: str,
        *,
        new_id: str | None = None,
        text: str | None = None,
        page_title: str | None = None,
        source: str | None = None,
        license: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> dict[str, str]:
        """Apply the given (non-None) fields to a chunk.

        A supplied *metadata* mapping with at least one non-standard key
        replaces the chunk's custom fields; standard keys inside it are ignored.
        """
        if metadata is not None and not isinstance(metadata, Mapping):
            raise InvalidInputError("metadata must be an object")
        with self._locked(project_name):
            project = self.files.load(project_name)
            found = find_chunk(project, chunk_id)
            if found is None:
                raise NotFoundError(f'Chunk "{chunk_id}" not found', entity="chunk")
            category, chunk = found

            if new_id is not None:
                renamed = clean_id(new_id)
                if not renamed:
                    raise EmptyIdError("Chunk ID is required")
                if renamed != chunk.id and is_id_taken(project, renamed, exclude_uid=chunk.uid):
                    raise DuplicateChunkIdError(f'Chunk ID "{renamed}" already exists')
                chunk.id = renamed
            if text is not None:
                chunk.text = stringify(text)
            if page_title is not None:
                chunk.metadata.page_title = stringify(page_title)
            if source is not None:
                chunk.metadata.source = stringify(source)
            if license is not None:
                chunk.metadata.license = stringify(license)
            custom = parse_custom_fields(metadata)
            if custom:
                chunk.custom_fields = custom

            self.files.save(project, project_name)
            self._commit(project_name, "update_chunk", f'Updated chunk "{chunk.id}"')
        return {"updated": chunk.id, "category": category.name}

    def delete_chunk(self, project_name: str, chunk_id: str) -> dict[str, str]:
        with self._locked(project_name):
            project = self.files.load(project_name)
            found = find_chunk(project, chunk_id)
            if found is None:
                raise NotFoundError(f'Chunk "{chunk_id}" not found', entity="chunk")
            category, chunk = found
            category.chunks.remove(chunk)
            self.files.save(project, project_name)
            self._commit(
                project_name, "delete_chunk", f'Deleted chunk "{chunk_id}" from "{category.name}"'
            )
        return {"deleted": chunk_id, "category": category.name}

    def duplicate_chunk(self, project_name: str, chunk_id: str) -> dict[str, str]:
        """Copy a chunk within its category as ``<id>_copy``, ``<id>_copy_1``, ..."""
        with self._locked(project_name):
            project = self.files.load(project_name)
            found = find_chunk(project, chunk_id)
            if found is None:
                raise NotFoundError(f'Chunk "{chunk_id}" not found', entity="chunk")
            category, chunk = found

            candidate = f"{chunk_id}_copy"
            n = 1
            while is_id_taken(project, candidate):
                candidate = f"{chunk_id}_copy_{n}"
                n += 1

            clone = chunk.clone(new_uid=True)
            clone.id = candidate
            category.chunks.append(clone)
            self.files.save(project, project_name)
            self._commit(
                project_name, "duplicate_chunk", f'Duplicated chunk "{chunk_id}" as "{candidate}"'
            )
        return {"original": chunk_id, "duplicate": candidate, "category": category.name}

    def move_chunk(self, project_name: str, chunk_id: str, target_category: str) -> dict[str, str]:
        with self._locked(project_name):
            project = self.files.load(project_name)
            target = find_category(project, target_category)
            found = find_chunk(project, chunk_id)
            if found is None:
                raise NotFoundError(f'Chunk "{chunk_id}" not found', entity="chunk")
            origin, chunk = found
            if origin.id == target.id:
                raise AlreadyInCategoryError("Chunk is already in that category")
            origin.chunks.remove(chunk)
            target.chunks.append(chunk)
            self.files.save(project, project_name)
            self._commit(
                project_name,
                "move_chunk",
                f'Moved chunk "{chunk_id}" from "{origin.name}" to "{target.name}"',
            )
        return {"moved": chunk_id, "from": origin.name, "to": target.name}

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search_chunks(self, project_name: str, query: str) -> dict[str, Any]:
        """Case-insensitive substring search over chunk IDs and text."""
        project = self.files.load(project_name)
        needle = (query or "").lower()
        results = []
        for category, chunk in iter_chunks(project):
            if needle in chunk.id.lower() or needle in chunk.text.lower():
                preview = chunk.text[: self.preview_length]
                if len(chunk.text) > self.preview_length:
                    preview += "..."
                results.append({"id": chunk.id, "category": category.name, "preview": preview})
        return {"query": query, "found": len(results), "results": results}

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def export_project(self, project_name: str) -> list[dict[str, Any]]:
        project = self.files.load(project_name)
        return export_chunks(chunk for _, chunk in iter_chunks(project))

    def export_category(self, project_name: str, category_name: str) -> list[dict[str, Any]]:
        project = self.files.load(project_name)
        return export_chunks(find_category(project, category_name).chunks)

    def export_to_file(self, project_name: str, category_name: str | None = None) -> dict[str, Any]:
        """Write the flat export to ``<name>.export.json`` in the data directory."""
        if category_name:
            records = self.export_category(project_name, category_name)
        else:
            records = self.export_project(project_name)
        path = self.files.write_export(project_name, records)
        logger.info("%s: exported %d chunks to %s", project_name, len(records), path)
        return {"exported": len(records), "saved_to": str(path)}

    def import_json(
        self,
        project_name: str,
        records: Sequence[Mapping[str, Any]],
        category_name: str | None = None,
    ) -> dict[str, Any]:
        """Import flat records; creates the project and category when missing.

        Entries with a blank or already-used ID are skipped and counted.

        Raises:
            InvalidInputError: If *records* is not a list.
        """
        if not isinstance(records, (list, tuple)):
            raise InvalidInputError("Import data must be a JSON array")
        check_project_name(project_name)
        cat_name = (category_name or "").strip() or DEFAULT_IMPORT_CATEGORY

        with self._locked(project_name):
            if self.files.exists(project_name):
                project = self.files.load(project_name)
            else:
                project = Project(name=project_name)
                logger.info("%s: created project for import", project_name)

            category = lookup_category(project, cat_name)
            if category is None:
                category = Category(name=cat_name)
                project.categories.append(category)

            imported = skipped = 0
            for record in records:
                if not isinstance(record, Mapping):
                    skipped += 1
                    continue
                new_chunk = chunk_from_record(record, self.default_license)
                if not new_chunk.id or is_id_taken(project, new_chunk.id):
                    skipped += 1
                    continue
                category.chunks.append(new_chunk)
                imported += 1

            self.files.save(project, project_name)
            self._commit(
                project_name,
                "import_json",
                f'Imported {imported} chunks into "{category.name}" ({skipped} skipped)',
            )
        return {
            "project": project_name,
            "category": category.name,
            "imported": imported,
            "skipped": skipped,
        }

    # ------------------------------------------------------------------
    # Bulk metadata / merge
    # ------------------------------------------------------------------

    def bulk_update_metadata(
        self,
        project_name: str,
        field: str,
        value: Any,
        category_name: str | None = None,
    ) -> dict[str, Any]:
        """Set *field* to *value* on every chunk (optionally within one category).

        Standard fields overwrite the metadata slot; any other field is
        upserted as a custom field.
        """
        if not field or not field.strip():
            raise EmptyNameError("Field name cannot be empty")
        text_value = stringify(value)
        with self._locked(project_name):
            project = self.files.load(project_name)
            if category_name:
                categories = [find_category(project, category_name)]
            else:
                categories = project.categories

            updated = 0
            for category in categories:
                for chunk in category.chunks:
                    if field in STANDARD_FIELDS:
                        chunk.metadata.set(field, text_value)
                    else:
                        existing = chunk.get_custom(field)
                        if existing is not None:
                            existing.value = text_value
                        else:
                            chunk.custom_fields.append(CustomField(key=field, value=text_value))
                    updated += 1

            self.files.save(project, project_name)
            self._commit(
                project_name,
                "bulk_update_metadata",
                f'Set "{field}" on {updated} chunks',
            )
        return {"project": project_name, "field": field, "value": text_value, "updated": updated}

    def merge_projects(self, source_name: str, target_name: str) -> dict[str, Any]:
        """Copy every chunk of *source* into *target*; *source* is never modified.

        Same-named categories (case-insensitive) are merged; others are
        created with a new identity. Chunks whose ID exists in the target are
        skipped; copied chunks get a new internal identity.
        """
        with self._locked(source_name, target_name):
            source = self.files.load(source_name)
            target = self.files.load(target_name)
            categories_merged = chunks_added = chunks_skipped = 0

            for src_category in source.categories:
                tgt_category = lookup_category(target, src_category.name)
                if tgt_category is None:
                    tgt_category = Category(name=src_category.name)
                    target.categories.append(tgt_category)
                    categories_merged += 1
                for chunk in src_category.chunks:
                    if is_id_taken(target, chunk.id):
                        chunks_skipped += 1
                        continue
                    tgt_category.chunks.append(chunk.clone(new_uid=True))
                    chunks_added += 1

            self.files.save(target, target_name)
            self._commit(
                target_name,
                "merge_projects",
                f'Merged "{source_name}": {chunks_added} chunks added, {chunks_skipped} skipped',
            )
        return {
            "source": source_name,
            "target": target_name,
            "categories_merged": categories_merged,
            "chunks_added": chunks_added,
            "chunks_skipped": chunks_skipped,
        }

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def commit(self, project_name: str, action: str, summary: str, source: str | None = None) -> dict[str, Any] | None:
        """Record a commit for an externally made change. Never raises on write failure."""
        check_source(source or self.source)
        with self._locked(project_name):
            commit = self.history.record(project_name, action, summary, source or self.source)
        return commit.to_dict(include_snapshot=False) if commit else None

    def get_history(self, project_name: str) -> list[dict[str, Any]]:
        return self.history.commits(project_name)

    def get_commit(self, project_name: str, commit_id: str) -> dict[str, Any]:
        return self.history.get(project_name, commit_id)

    def rollback(self, project_name: str, commit_id: str, source: str | None = None) -> dict[str, Any]:
        """Restore a commit's snapshot as the live project (itself recorded)."""
        check_source(source or self.source)
        with self._locked(project_name):
            project = self.history.rollback(project_name, commit_id, source or self.source)
        return project.to_dict()
