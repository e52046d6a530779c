"""Tryll local document store."""

from tryll.store.errors import (
    AlreadyExistsError,
    AlreadyInCategoryError,
    CorruptDocumentError,
    DuplicateCategoryError,
    DuplicateChunkIdError,
    EmptyIdError,
    EmptyNameError,
    InvalidInputError,
    InvalidNameError,
    NotFoundError,
    StoreError,
)
from tryll.store.history import MAX_HISTORY
from tryll.store.models import DEFAULT_LICENSE, STANDARD_FIELDS
from tryll.store.store import PREVIEW_LENGTH, Store

__all__ = [
    "Store",
    "StoreError",
    "NotFoundError",
    "InvalidNameError",
    "EmptyNameError",
    "EmptyIdError",
    "AlreadyExistsError",
    "DuplicateCategoryError",
    "DuplicateChunkIdError",
    "AlreadyInCategoryError",
    "InvalidInputError",
    "CorruptDocumentError",
    "DEFAULT_LICENSE",
    "STANDARD_FIELDS",
    "MAX_HISTORY",
    "PREVIEW_LENGTH",
]
