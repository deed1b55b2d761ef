"""
Queue drainer for the thought review scheduler.

Runs one review cycle: claim the pending batch, hand the Project thoughts to
the analyzer and the whole batch to the digester, and report what happened.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence

from loguru import logger

from ..config.logging_config import LoggedOperation, StructuredLogger
from ..database.models import Category, Note
from ..database.operations import ThoughtStore
from .adapters import Analyzer, Digester


class AdapterStatus(Enum):
    """Outcome of invoking one downstream consumer."""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class CycleStatus(Enum):
    """Overall result of a cycle that managed to claim its batch."""
    NOTHING_PENDING = "nothing_pending"
    COMPLETED = "completed"
    DELIVERY_FAILED = "delivery_failed"


@dataclass(frozen=True)
class AdapterOutcome:
    """Result of one adapter call."""
    status: AdapterStatus
    error: Optional[str] = None

    @classmethod
    def succeeded(cls) -> AdapterOutcome:
        return cls(AdapterStatus.SUCCEEDED)

    @classmethod
    def skipped(cls) -> AdapterOutcome:
        return cls(AdapterStatus.SKIPPED)

    @classmethod
    def failed(cls, error: BaseException) -> AdapterOutcome:
        return cls(AdapterStatus.FAILED, f"{type(error).__name__}: {error}")

    @property
    def ok(self) -> bool:
        return self.status is not AdapterStatus.FAILED


@dataclass(frozen=True)
class CycleReport:
    """What one review cycle claimed and how delivery went.

    The claim is authoritative: thoughts in ``batch`` are reviewed in storage
    whatever the adapter outcomes say.
    """
    cycle_id: str
    batch: tuple[Note, ...]
    analysis: Optional[str]
    analysis_outcome: AdapterOutcome
    digest_outcome: AdapterOutcome
    started_at: datetime
    completed_at: datetime

    @property
    def digest_sent(self) -> bool:
        return self.digest_outcome.status is AdapterStatus.SUCCEEDED

    @property
    def is_empty(self) -> bool:
        return not self.batch

    @property
    def status(self) -> CycleStatus:
        if not (self.analysis_outcome.ok and self.digest_outcome.ok):
            return CycleStatus.DELIVERY_FAILED
        if self.is_empty:
            return CycleStatus.NOTHING_PENDING
        return CycleStatus.COMPLETED

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()


def select_for_analysis(batch: Sequence[Note], category: Category = Category.PROJECT) -> list[str]:
    """Bodies of the thoughts in ``category``, keeping claim order."""
    return [note.body for note in batch if note.category is category]


class QueueDrainer:
    """Runs review cycles against a thought store."""

    def __init__(
        self,
        store: ThoughtStore,
        analyzer: Analyzer,
        digester: Digester,
        analysis_category: Category = Category.PROJECT,
        structured_logger: Optional[StructuredLogger] = None
    ) -> None:
        """Initialize the drainer.

        Args:
            store: Store the batch is claimed from.
            analyzer: Receives the bodies of ``analysis_category`` thoughts.
            digester: Receives the entire batch.
            analysis_category: Category forwarded to the analyzer.
            structured_logger: Optional logger used to time each cycle.
        """
        self.store: ThoughtStore = store
        self.analyzer: Analyzer = analyzer
        self.digester: Digester = digester
        self.analysis_category: Category = analysis_category
        self.structured_logger: Optional[StructuredLogger] = structured_logger

    def run_cycle(self) -> CycleReport:
        """Run exactly one review cycle.

        Returns:
            Report of the claimed batch and both adapter outcomes.

        Raises:
            StorageError: If the batch could not be claimed. No adapter is
                invoked in that case.
        """
        started_at: datetime = datetime.now()
        cycle_id: str = f"cycle_{started_at.strftime('%Y%m%d_%H%M%S_%f')}"

        if self.structured_logger is None:
            return self._run(cycle_id, started_at)

        with LoggedOperation(self.structured_logger, "review_cycle", cycle_id=cycle_id):
            return self._run(cycle_id, started_at)

    def _run(self, cycle_id: str, started_at: datetime) -> CycleReport:
        batch: tuple[Note, ...] = tuple(self.store.claim_unreviewed())
        if self.structured_logger is not None:
            self.structured_logger.log_claim(len(batch), cycle_id=cycle_id)

        analysis: Optional[str]
        analysis_outcome: AdapterOutcome
        analysis, analysis_outcome = self._analyze(batch)
        digest_outcome: AdapterOutcome = self._digest(batch, analysis)

        report: CycleReport = CycleReport(
            cycle_id=cycle_id,
            batch=batch,
            analysis=analysis,
            analysis_outcome=analysis_outcome,
            digest_outcome=digest_outcome,
            started_at=started_at,
            completed_at=datetime.now()
        )

        logger.info(
            f"Review cycle {cycle_id} finished: {report.status.value} "
            f"({len(batch)} thoughts, analysis {analysis_outcome.status.value}, "
            f"digest {digest_outcome.status.value})"
        )
        return report

    def _analyze(self, batch: Sequence[Note]) -> tuple[Optional[str], AdapterOutcome]:
        ideas: list[str] = select_for_analysis(batch, self.analysis_category)
        if not ideas:
            logger.info(f"No {self.analysis_category.value} thoughts in batch, skipping analysis")
            return None, AdapterOutcome.skipped()

        try:
            analysis: str = self.analyzer.summarize(ideas)
            logger.info(f"Analysis received for {len(ideas)} {self.analysis_category.value} thoughts")
            return analysis, AdapterOutcome.succeeded()
        except Exception as e:
            logger.error(f"Analysis failed for {len(ideas)} thoughts: {e}")
            return None, AdapterOutcome.failed(e)

    def _digest(self, batch: Sequence[Note], analysis: Optional[str]) -> AdapterOutcome:
        try:
            self.digester.deliver(batch, analysis=analysis)
            if self.structured_logger is not None:
                self.structured_logger.log_delivery("digest", success=True, notes_count=len(batch))
            return AdapterOutcome.succeeded()
        except Exception as e:
            logger.error(f"Digest delivery failed for {len(batch)} thoughts: {e}")
            if self.structured_logger is not None:
                self.structured_logger.log_delivery(
                    "digest", success=False, notes_count=len(batch), error=str(e)
                )
            return AdapterOutcome.failed(e)
