"""Database package for thought review scheduler."""

from .models import Category, InvalidCategoryError, Note
from .operations import (
    ClaimError,
    StorageError,
    ThoughtStore,
    get_db_connection,
)

__all__ = [
    # Models
    "Category",
    "Note",
    # Exceptions
    "InvalidCategoryError",
    "StorageError",
    "ClaimError",
    # Operations
    "ThoughtStore",
    "get_db_connection",
]
