#!/usr/bin/env python3
"""Tests for the thought store gateway and its atomic claim."""

from __future__ import annotations

from pathlib import Path

import pytest

from thought_reviewer.database.models import Category, InvalidCategoryError
from thought_reviewer.database.operations import StorageError, ThoughtStore, get_db_connection


def stored_review_flags(db_path: Path) -> dict[int, int]:
    with get_db_connection(db_path) as db_connection:
        rows = db_connection.execute("SELECT id, reviewed FROM thoughts ORDER BY id").fetchall()
        return {int(row["id"]): int(row["reviewed"]) for row in rows}


def test_initialize_creates_database_file(db_path: Path) -> None:
    ThoughtStore(db_path).initialize()
    assert db_path.exists()


def test_initialize_is_idempotent(store: ThoughtStore) -> None:
    store.append(Category.NOTES, "kept")
    store.initialize()
    assert store.count_thoughts()["total"] == 1


def test_append_assigns_increasing_ids(store: ThoughtStore) -> None:
    ids = [store.append(Category.NOTES, f"thought {i}") for i in range(5)]
    assert ids == sorted(ids)
    assert len(set(ids)) == 5


def test_append_accepts_category_names_in_any_case(store: ThoughtStore) -> None:
    store.append("project", "from text")
    [note] = store.list_unreviewed()
    assert note.category is Category.PROJECT


def test_append_rejects_unknown_category_before_writing(store: ThoughtStore) -> None:
    with pytest.raises(InvalidCategoryError):
        store.append("idea", "never stored")
    assert store.count_thoughts()["total"] == 0


@pytest.mark.parametrize("body", ["", "   ", "\n"])
def test_append_rejects_blank_body(store: ThoughtStore, body: str) -> None:
    with pytest.raises(ValueError):
        store.append(Category.TODO, body)
    assert store.count_thoughts()["total"] == 0


def test_claim_returns_exactly_the_appended_set_in_order(store: ThoughtStore) -> None:
    appended = [
        (Category.NOTES, "first"),
        (Category.PROJECT, "second"),
        (Category.TODO, "third"),
        (Category.QUESTION, "fourth"),
        (Category.MISC, "fifth"),
    ]
    ids = [store.append(category, body) for category, body in appended]

    claimed = store.claim_unreviewed()

    assert [note.id for note in claimed] == ids
    assert [(note.category, note.body) for note in claimed] == appended
    assert all(note.created_at is not None for note in claimed)


def test_claimed_notes_report_state_at_selection_time(store: ThoughtStore, db_path: Path) -> None:
    store.append(Category.NOTES, "a")
    store.append(Category.NOTES, "b")

    claimed = store.claim_unreviewed()

    assert [note.reviewed for note in claimed] == [False, False]
    assert set(stored_review_flags(db_path).values()) == {1}


def test_second_claim_without_appends_is_empty(store: ThoughtStore) -> None:
    store.append(Category.NOTES, "only once")

    assert len(store.claim_unreviewed()) == 1
    assert store.claim_unreviewed() == []


def test_claim_on_empty_store_is_empty(store: ThoughtStore) -> None:
    assert store.claim_unreviewed() == []


def test_claim_after_claim_returns_only_new_appends(store: ThoughtStore) -> None:
    store.append(Category.NOTES, "old 1")
    store.append(Category.NOTES, "old 2")
    store.claim_unreviewed()

    new_id = store.append(Category.PROJECT, "new")

    claimed = store.claim_unreviewed()
    assert [(note.id, note.body) for note in claimed] == [(new_id, "new")]


def test_list_unreviewed_does_not_claim(store: ThoughtStore) -> None:
    store.append(Category.TODO, "peek at me")

    assert len(store.list_unreviewed()) == 1
    assert len(store.list_unreviewed()) == 1
    assert len(store.claim_unreviewed()) == 1
    assert store.list_unreviewed() == []


def test_count_thoughts(store: ThoughtStore) -> None:
    assert store.count_thoughts() == {"total": 0, "reviewed": 0, "pending": 0}

    store.append(Category.NOTES, "a")
    store.append(Category.NOTES, "b")
    store.claim_unreviewed()
    store.append(Category.NOTES, "c")

    assert store.count_thoughts() == {"total": 3, "reviewed": 2, "pending": 1}


def test_failed_mark_rolls_back_and_batch_is_claimable_again(store: ThoughtStore, db_path: Path) -> None:
    store.append(Category.NOTES, "a")
    store.append(Category.PROJECT, "b")

    with get_db_connection(db_path) as db_connection:
        db_connection.execute(
            """CREATE TRIGGER block_review BEFORE UPDATE ON thoughts
               BEGIN SELECT RAISE(ABORT, 'review blocked'); END"""
        )
        db_connection.commit()

    with pytest.raises(StorageError):
        store.claim_unreviewed()
    assert set(stored_review_flags(db_path).values()) == {0}

    with get_db_connection(db_path) as db_connection:
        db_connection.execute("DROP TRIGGER block_review")
        db_connection.commit()

    assert [note.body for note in store.claim_unreviewed()] == ["a", "b"]


def test_unreadable_row_aborts_claim_without_marking(store: ThoughtStore, db_path: Path) -> None:
    store.append(Category.NOTES, "fine")
    with get_db_connection(db_path) as db_connection:
        db_connection.execute(
            "INSERT INTO thoughts (category, body, reviewed, created_at) VALUES ('Bogus', 'x', 0, '2024-01-01T00:00:00')"
        )
        db_connection.commit()

    with pytest.raises(StorageError):
        store.claim_unreviewed()
    assert set(stored_review_flags(db_path).values()) == {0}


def test_claim_waits_for_competing_writer_and_fails_cleanly(store: ThoughtStore, db_path: Path) -> None:
    store.append(Category.NOTES, "contended")

    with get_db_connection(db_path) as competing:
        competing.execute("BEGIN IMMEDIATE")
        with pytest.raises(StorageError):
            store.claim_unreviewed()
        competing.rollback()

    assert [note.body for note in store.claim_unreviewed()] == ["contended"]


def test_operations_on_unusable_path_raise_storage_error(tmp_path: Path) -> None:
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("file in the way")

    with pytest.raises(StorageError):
        ThoughtStore(blocker / "thoughts.db").initialize()


def test_timeout_must_be_positive(db_path: Path) -> None:
    with pytest.raises(ValueError):
        ThoughtStore(db_path, timeout_seconds=0)
