"""Database operations for the thought review scheduler."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import ContextManager, Final, Generator

from loguru import logger

from .models import Category, Note, create_tables_sql


DEFAULT_DATABASE_PATH: Final[Path] = Path("thought_app.db")

_SELECT_COLUMNS: Final[str] = "id, category, body, reviewed, created_at"


class StorageError(Exception):
    """Raised when the thought store cannot be read or written."""
    pass


class ClaimError(StorageError):
    """Raised when the unreviewed batch could not be claimed atomically."""
    pass


@contextmanager
def get_db_connection(
    db_path: Path = DEFAULT_DATABASE_PATH,
    timeout_seconds: float = 5.0
) -> Generator[sqlite3.Connection, None, None]:
    """Open a short-lived connection to the thought store.

    Any open transaction is rolled back when the block raises.

    Args:
        db_path: Path to the SQLite database file.
        timeout_seconds: How long to wait for a competing writer's lock.

    Yields:
        A connection whose rows support access by column name.

    Raises:
        StorageError: If database connection or operations fail.
    """
    db_connection: sqlite3.Connection | None = None
    try:
        db_connection = sqlite3.connect(str(db_path), timeout=timeout_seconds)
        db_connection.row_factory = sqlite3.Row
        logger.debug(f"Opened connection to {db_path}")
        yield db_connection
    except StorageError:
        if db_connection is not None:
            db_connection.rollback()
        raise
    except sqlite3.Error as e:
        logger.error(f"SQLite error on {db_path}: {e}")
        if db_connection is not None:
            db_connection.rollback()
        raise StorageError(f"Database operation failed: {e}") from e
    except Exception as e:
        logger.error(f"Thought store operation failed on {db_path}: {e}")
        if db_connection is not None:
            db_connection.rollback()
        raise StorageError(f"Unexpected database error: {e}") from e
    finally:
        if db_connection is not None:
            db_connection.close()
            logger.debug(f"Closed connection to {db_path}")


def _row_to_note(row: sqlite3.Row) -> Note:
    return Note(
        id=int(row["id"]),
        category=Category.parse(str(row["category"])),
        body=str(row["body"]),
        reviewed=bool(row["reviewed"]),
        created_at=datetime.fromisoformat(str(row["created_at"]))
    )


class ThoughtStore:
    """Gateway to the thoughts table.

    The store is an append-only queue keyed by id. Writers append thoughts,
    the reader claims every pending thought in one transaction. Each call opens
    its own short-lived connection, so an in-memory database is not supported.
    """

    def __init__(self, db_path: Path = DEFAULT_DATABASE_PATH, timeout_seconds: float = 5.0) -> None:
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file.
            timeout_seconds: Busy timeout used while waiting for the write lock.
        """
        if timeout_seconds <= 0:
            raise ValueError("Timeout must be positive")

        self.db_path: Path = Path(db_path)
        self.timeout_seconds: float = timeout_seconds

    def _connect(self) -> ContextManager[sqlite3.Connection]:
        return get_db_connection(self.db_path, self.timeout_seconds)

    def initialize(self) -> None:
        """Create the thoughts table if it doesn't exist.

        Raises:
            StorageError: If table creation fails.
        """
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._connect() as db_connection:
                db_connection.execute(create_tables_sql())
                db_connection.commit()
                logger.info(f"Thought store initialized at {self.db_path}")
        except OSError as e:
            logger.error(f"Failed to create database directory for {self.db_path}: {e}")
            raise StorageError(f"Database initialization failed: {e}") from e
        except StorageError as e:
            logger.error(f"Could not create thought table: {e}")
            raise

    def append(self, category: Category | str, body: str) -> int:
        """Insert one unreviewed thought.

        Args:
            category: Category member or its name in any case.
            body: Thought text; must not be blank.

        Returns:
            The id assigned to the new thought.

        Raises:
            InvalidCategoryError: If the category name is unknown. Nothing is written.
            ValueError: If the body is blank. Nothing is written.
            StorageError: If the insert fails.
        """
        parsed: Category = category if isinstance(category, Category) else Category.parse(category)
        if not body or not body.strip():
            raise ValueError("Thought body cannot be empty")

        try:
            with self._connect() as db_connection:
                cursor: sqlite3.Cursor = db_connection.execute(
                    "INSERT INTO thoughts (category, body, reviewed, created_at) VALUES (?, ?, 0, ?)",
                    (parsed.value, body, datetime.now().isoformat())
                )
                last_row_id: int | None = cursor.lastrowid
                if last_row_id is None:
                    raise StorageError("Failed to get last row ID after insert")
                db_connection.commit()

                logger.info(f"Captured {parsed.value} thought (ID: {last_row_id})")
                return last_row_id

        except StorageError as e:
            logger.error(f"Failed to append {parsed.value} thought: {e}")
            raise

    def claim_unreviewed(self) -> list[Note]:
        """Atomically take every unreviewed thought and mark it reviewed.

        The select and the update run inside one ``BEGIN IMMEDIATE``
        transaction, so the rows flipped are exactly the rows returned and no
        concurrent writer or second reader can interleave. If anything fails
        the transaction rolls back and the same thoughts are claimable again.

        Returns:
            Pending thoughts in ascending id order, carrying ``reviewed=False``.

        Raises:
            ClaimError: If the update did not cover exactly the selected rows.
            StorageError: If the database cannot be read or written.
        """
        try:
            with self._connect() as db_connection:
                db_connection.execute("BEGIN IMMEDIATE")
                rows: list[sqlite3.Row] = db_connection.execute(
                    f"SELECT {_SELECT_COLUMNS} FROM thoughts WHERE reviewed = 0 ORDER BY id ASC"
                ).fetchall()

                if not rows:
                    db_connection.rollback()
                    logger.info("No unreviewed thoughts to claim")
                    return []

                notes: list[Note] = [_row_to_note(row) for row in rows]

                # ids grow monotonically and the write lock is held, so the
                # range covers the selected rows and nothing else.
                cursor: sqlite3.Cursor = db_connection.execute(
                    "UPDATE thoughts SET reviewed = 1 WHERE reviewed = 0 AND id <= ?",
                    (notes[-1].id,)
                )
                if cursor.rowcount != len(notes):
                    raise ClaimError(
                        f"Claim marked {cursor.rowcount} rows but selected {len(notes)}"
                    )
                db_connection.commit()

                logger.info(
                    f"Claimed {len(notes)} unreviewed thoughts "
                    f"(IDs {notes[0].id}..{notes[-1].id})"
                )
                return notes

        except StorageError as e:
            logger.error(f"Failed to claim unreviewed thoughts: {e}")
            raise

    def list_unreviewed(self) -> list[Note]:
        """Return pending thoughts without claiming them.

        Raises:
            StorageError: If the query fails.
        """
        try:
            with self._connect() as db_connection:
                rows: list[sqlite3.Row] = db_connection.execute(
                    f"SELECT {_SELECT_COLUMNS} FROM thoughts WHERE reviewed = 0 ORDER BY id ASC"
                ).fetchall()
                notes: list[Note] = [_row_to_note(row) for row in rows]

                logger.debug(f"Found {len(notes)} unreviewed thoughts")
                return notes

        except StorageError as e:
            logger.error(f"Failed to list unreviewed thoughts: {e}")
            raise

    def count_thoughts(self) -> dict[str, int]:
        """Return total, reviewed and pending counts.

        Raises:
            StorageError: If the query fails.
        """
        try:
            with self._connect() as db_connection:
                row: sqlite3.Row = db_connection.execute(
                    """SELECT COUNT(*) AS total,
                              COALESCE(SUM(reviewed), 0) AS reviewed
                       FROM thoughts"""
                ).fetchone()
                total: int = int(row["total"])
                reviewed: int = int(row["reviewed"])

                return {"total": total, "reviewed": reviewed, "pending": total - reviewed}

        except StorageError as e:
            logger.error(f"Failed to count thoughts: {e}")
            raise
