"""Identifier helpers: name sanitisation and uniqueness checks.

Category names compare case-insensitively (via ``fold_name``); chunk IDs are
case-sensitive and compared exactly.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from tryll.store.errors import InvalidNameError, NotFoundError

if TYPE_CHECKING:
    from tryll.store.models import Category, Chunk, Project

_UNSAFE_NAME_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9_\-. ]")

# Project file stems must not collide with the side documents of another project.
_RESERVED_SUFFIXES: tuple[str, ...] = (".history", ".export")


def sanitize_project_name(name: str) -> str:
    """Strip everything outside ``[A-Za-z0-9_-. ]`` and trim whitespace."""
    return _UNSAFE_NAME_RE.sub("", name or "").strip()


def check_project_name(name: str) -> str:
    """Return *name* if it is a usable, already-sanitised project name.

    Raises:
        InvalidNameError: If the name is empty, contains characters outside
            the safe set, or ends with a reserved document suffix.
    """
    if not isinstance(name, str):
        raise InvalidNameError("Invalid project name")
    safe = sanitize_project_name(name)
    if not safe or safe != name:
        raise InvalidNameError(f'Invalid project name "{name}"')
    if safe.lower().endswith(_RESERVED_SUFFIXES) or safe in (".", ".."):
        raise InvalidNameError(f'Invalid project name "{name}"')
    return safe


def fold_name(name: str) -> str:
    """Normalise a category name for case-insensitive comparison."""
    return name.casefold()


def find_category(project: Project, name: str) -> Category:
    """Return the category named *name* (case-insensitive).

    Raises:
        NotFoundError: If no category matches.
    """
    category = lookup_category(project, name)
    if category is None:
        raise NotFoundError(f'Category "{name}" not found', entity="category")
    return category


def lookup_category(project: Project, name: str) -> Category | None:
    folded = fold_name(name)
    for category in project.categories:
        if fold_name(category.name) == folded:
            return category
    return None


def category_name_taken(project: Project, name: str, exclude_id: str | None = None) -> bool:
    """True if another category (identity != *exclude_id*) already uses *name*."""
    folded = fold_name(name)
    return any(
        fold_name(c.name) == folded and c.id != exclude_id for c in project.categories
    )


def is_id_taken(project: Project, chunk_id: str, exclude_uid: str | None = None) -> bool:
    """True if any chunk in the whole project already has *chunk_id*.

    The chunk whose internal identity equals *exclude_uid* is ignored, so a
    chunk may be "renamed" to its own ID.
    """
    return any(
        chunk.id == chunk_id and chunk.uid != exclude_uid
        for _, chunk in iter_chunks(project)
    )


def find_chunk(project: Project, chunk_id: str) -> tuple[Category, Chunk] | None:
    """Return ``(category, chunk)`` for the first chunk with *chunk_id*."""
    for category, chunk in iter_chunks(project):
        if chunk.id == chunk_id:
            return category, chunk
    return None


def iter_chunks(project: Project):
    """Yield ``(category, chunk)`` pairs in category then chunk order."""
    for category in project.categories:
        for chunk in category.chunks:
            yield category, chunk
