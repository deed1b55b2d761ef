"""
Main application wiring for Thought Review Scheduler

Turns loaded settings into a store, the two adapters and a queue drainer.
"""

from __future__ import annotations

from pathlib import Path
from typing import Final, Optional

from loguru import logger

from .analysis.client import GeminiAnalyzer
from .config.logging_config import StructuredLogger, setup_logging
from .config.settings import Settings, load_settings
from .database.operations import ThoughtStore
from .email.digester import EmailDigester
from .email.service import EmailService
from .review.drainer import CycleReport, QueueDrainer


DEFAULT_CONFIG_PATH: Final[Path] = Path("config/credentials.enc")


def build_drainer(settings: Settings, structured_logger: Optional[StructuredLogger] = None) -> QueueDrainer:
    """Wire a QueueDrainer from settings."""
    store: ThoughtStore = ThoughtStore(settings.database_path)
    store.initialize()

    digester: EmailDigester = EmailDigester(
        EmailService(settings.email_config),
        recipient_email=settings.recipient_email,
        recipient_name=settings.recipient_name
    )

    return QueueDrainer(
        store=store,
        analyzer=GeminiAnalyzer(settings.analyzer_config),
        digester=digester,
        analysis_category=settings.analysis_category,
        structured_logger=structured_logger
    )


class ThoughtReviewApplication:
    """Loads configuration once and runs review cycles with it."""

    def __init__(self, config_path: Optional[Path] = None) -> None:
        self.config_path: Path = config_path or DEFAULT_CONFIG_PATH
        self.settings: Optional[Settings] = None
        self.structured_logger: Optional[StructuredLogger] = None
        self._drainer: Optional[QueueDrainer] = None

    def initialize(self, master_password: str, console_logging: bool = True) -> Settings:
        """Decrypt the configuration and set up logging.

        Raises:
            CredentialError: If the configuration cannot be loaded.
        """
        self.settings = load_settings(self.config_path, master_password)
        self.structured_logger = setup_logging(self.settings.logging_config(console_enabled=console_logging))
        logger.info("Thought Review application initialized")
        return self.settings

    @property
    def drainer(self) -> QueueDrainer:
        if self.settings is None:
            raise RuntimeError("Application not initialized")
        if self._drainer is None:
            self._drainer = build_drainer(self.settings, self.structured_logger)
        return self._drainer

    def run_review_cycle(self) -> CycleReport:
        """Run one review cycle.

        Raises:
            RuntimeError: If ``initialize`` has not been called.
            StorageError: If the queue could not be claimed.
        """
        return self.drainer.run_cycle()
