"""Interfaces for the two consumers of a claimed batch."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..database.models import Note


class AdapterError(Exception):
    """Base exception for analyzer and digester failures.

    Recorded in the cycle report, never raised out of a review cycle.
    """
    pass


class Analyzer(Protocol):
    """Produces free-text commentary on a list of thought bodies."""

    def summarize(self, ideas: Sequence[str]) -> str:
        ...


class Digester(Protocol):
    """Delivers a human-readable summary of a whole batch.

    Must accept an empty batch and say so explicitly in what it delivers.
    """

    def deliver(self, batch: Sequence[Note], analysis: Optional[str] = None) -> None:
        ...
