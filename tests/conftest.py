"""Shared fixtures for the thought review tests."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pytest
from loguru import logger

from thought_reviewer.database.models import Note
from thought_reviewer.database.operations import ThoughtStore

# Configure loguru for testing
logger.remove()
logger.add(lambda msg: print(msg, end=""), level="INFO")


class RecordingAnalyzer:
    """Analyzer double that remembers every call."""

    def __init__(self, result: str = "analysis text", error: Optional[Exception] = None) -> None:
        self.result = result
        self.error = error
        self.calls: List[List[str]] = []

    def summarize(self, ideas: Sequence[str]) -> str:
        self.calls.append(list(ideas))
        if self.error is not None:
            raise self.error
        return self.result


class RecordingDigester:
    """Digester double that remembers every call."""

    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.calls: List[Tuple[Tuple[Note, ...], Optional[str]]] = []

    def deliver(self, batch: Sequence[Note], analysis: Optional[str] = None) -> None:
        self.calls.append((tuple(batch), analysis))
        if self.error is not None:
            raise self.error


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "thoughts.db"


@pytest.fixture
def store(db_path: Path) -> ThoughtStore:
    thought_store = ThoughtStore(db_path, timeout_seconds=0.2)
    thought_store.initialize()
    return thought_store


@pytest.fixture
def analyzer() -> RecordingAnalyzer:
    return RecordingAnalyzer()


@pytest.fixture
def digester() -> RecordingDigester:
    return RecordingDigester()


@pytest.fixture
def captured_at() -> datetime:
    return datetime(2024, 3, 8, 9, 30)
