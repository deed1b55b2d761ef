"""Database models for the thought review scheduler."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Final


class InvalidCategoryError(ValueError):
    """Raised when text does not name a known thought category."""
    pass


class Category(str, Enum):
    """Closed set of tags a thought can carry.

    The enum value is the canonical display form stored in the database.
    """
    NOTES = "Notes"
    PROJECT = "Project"
    MISC = "Misc"
    TODO = "Todo"
    QUESTION = "Question"

    @classmethod
    def parse(cls, text: str) -> Category:
        """Parse a category name, ignoring case and surrounding whitespace.

        Args:
            text: Category name such as "project" or "TODO".

        Returns:
            The matching Category member.

        Raises:
            InvalidCategoryError: If the text names no category.
        """
        wanted: str = text.strip().lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        raise InvalidCategoryError(f"Unknown thought category: {text!r}")

    @classmethod
    def names(cls) -> list[str]:
        """Canonical names in declaration order."""
        return [member.value for member in cls]

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Note:
    """Model representing one captured thought.

    Immutable dataclass to prevent accidental mutation of database records.
    A note returned by a claim carries the review state seen at selection
    time, so `reviewed` is False even though storage now says otherwise.
    """
    id: int
    category: Category
    body: str
    reviewed: bool = False
    created_at: datetime | None = None


def create_tables_sql() -> str:
    """Return the SQL statement that creates the thoughts table."""
    thoughts_table_sql: Final[str] = """
    CREATE TABLE IF NOT EXISTS thoughts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        category TEXT NOT NULL,
        body TEXT NOT NULL,
        reviewed INTEGER NOT NULL DEFAULT 0,
        created_at TIMESTAMP NOT NULL
    )
    """

    return thoughts_table_sql
