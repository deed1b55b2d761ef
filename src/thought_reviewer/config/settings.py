"""Centralized settings management for thought review scheduler."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from ..analysis.client import AnalyzerConfig
from ..database.models import Category
from ..email.service import EmailConfig
from ..security.credentials import CredentialError, CredentialManager
from .logging_config import LoggingConfig


@dataclass(frozen=True)
class Settings:
    """Everything the reader path needs, resolved from the encrypted config."""

    config_file: Path
    database_path: Path

    email_config: EmailConfig
    recipient_email: str
    recipient_name: str

    analyzer_config: AnalyzerConfig
    analysis_category: Category

    log_level: str
    log_file: Path

    @classmethod
    def from_credential_manager(cls, credential_manager: CredentialManager) -> Settings:
        """Create Settings from a CredentialManager.

        Raises:
            CredentialError: If loading or validating the credentials fails.
        """
        email_credentials, analyzer_credentials, app_config = credential_manager.load_credentials()

        try:
            return cls(
                config_file=credential_manager.config_file,
                database_path=Path(app_config.database_path),
                email_config=EmailConfig(
                    smtp_server=email_credentials.smtp_server,
                    smtp_port=email_credentials.smtp_port,
                    username=email_credentials.username,
                    password=email_credentials.password,
                    from_email=email_credentials.username,
                    from_name=email_credentials.from_name
                ),
                recipient_email=app_config.recipient_email,
                recipient_name=app_config.recipient_name,
                analyzer_config=AnalyzerConfig(
                    api_key=analyzer_credentials.api_key,
                    endpoint=analyzer_credentials.endpoint,
                    timeout_seconds=analyzer_credentials.timeout_seconds
                ),
                analysis_category=Category.parse(app_config.analysis_category),
                log_level=app_config.log_level,
                log_file=Path(app_config.log_file)
            )
        except ValueError as e:
            logger.error(f"Failed to create settings from credential manager: {e}")
            raise CredentialError(f"Invalid settings: {e}") from e

    def logging_config(self, console_enabled: bool = True) -> LoggingConfig:
        return LoggingConfig(
            log_file=self.log_file,
            log_level=self.log_level,
            console_enabled=console_enabled,
            console_level=self.log_level
        )


def load_settings(config_file: Path, master_password: str) -> Settings:
    """Load application settings from encrypted configuration.

    Raises:
        CredentialError: If loading fails.
    """
    try:
        credential_manager: CredentialManager = CredentialManager(config_file, master_password)
    except ValueError as e:
        raise CredentialError(f"Failed to load settings: {e}") from e

    settings: Settings = Settings.from_credential_manager(credential_manager)
    logger.info(f"Settings loaded successfully from {config_file}")
    return settings
