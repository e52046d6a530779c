"""Store error taxonomy.

Every failure raised by the store derives from ``StoreError`` and carries a
``kind`` naming the logical failure, so transport layers (CLI, MCP) can map
errors without inspecting messages:

    try:
        store.add_chunk("demo", "Mobs", {"id": "creeper", "text": "..."})
    except DuplicateChunkIdError as exc:
        print(exc.kind)  # "DuplicateChunkId"
"""

from __future__ import annotations


class StoreError(ValueError):
    """Base class for every store failure."""

    kind: str = "StoreError"


class NotFoundError(StoreError):
    """Project, category, chunk, or commit does not exist.

    ``entity`` names what was missing: ``"project"``, ``"category"``,
    ``"chunk"`` or ``"commit"``.
    """

    kind = "NotFound"

    def __init__(self, message: str, *, entity: str = "") -> None:
        super().__init__(message)
        self.entity = entity


class InvalidNameError(StoreError):
    """Project name is empty or unusable after sanitisation."""

    kind = "InvalidName"


class EmptyNameError(StoreError):
    """Category (or field) name is blank."""

    kind = "EmptyName"


class EmptyIdError(StoreError):
    """Chunk ID is blank."""

    kind = "EmptyId"


class AlreadyExistsError(StoreError):
    """A project with this name already exists."""

    kind = "AlreadyExists"


class DuplicateCategoryError(StoreError):
    """Another category already uses this name (case-insensitive)."""

    kind = "DuplicateCategory"


class DuplicateChunkIdError(StoreError):
    """Chunk ID is already used somewhere in the project."""

    kind = "DuplicateChunkId"


class AlreadyInCategoryError(StoreError):
    """Move target is the chunk's current category."""

    kind = "AlreadyInCategory"


class InvalidInputError(StoreError):
    """Structurally invalid input, e.g. an import payload that is not a list."""

    kind = "InvalidInput"


class CorruptDocumentError(StoreError):
    """A persisted document is not valid JSON or has the wrong shape."""

    kind = "CorruptDocument"
