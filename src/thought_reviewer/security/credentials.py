"""Credential management for the SMTP account, the analysis API key and app settings."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Final, Optional

from loguru import logger

from ..analysis.client import DEFAULT_GEMINI_ENDPOINT
from ..database.models import Category
from .encryption import DecryptionError, EncryptionManager


CONFIG_VERSION: Final[str] = "1.0"


class CredentialError(Exception):
    """Raised when the encrypted configuration cannot be read or written."""
    pass


@dataclass(frozen=True)
class EmailCredentials:
    """Immutable SMTP credentials."""
    username: str
    password: str  # App password for Gmail
    from_name: str = "Thought App"
    smtp_server: str = "smtp.gmail.com"
    smtp_port: int = 587

    def __post_init__(self) -> None:
        if not self.username.strip():
            raise ValueError("SMTP username is required")
        if not self.password.strip():
            raise ValueError("SMTP password is required")
        if "@" not in self.username:
            raise ValueError(f"SMTP username is not an email address: {self.username}")
        if not (1 <= self.smtp_port <= 65535):
            raise ValueError(f"SMTP port out of range: {self.smtp_port}")


@dataclass(frozen=True)
class AnalyzerCredentials:
    """Immutable settings for the generative-AI endpoint."""
    api_key: str
    endpoint: str = DEFAULT_GEMINI_ENDPOINT
    timeout_seconds: int = 60

    def __post_init__(self) -> None:
        if not self.api_key.strip():
            raise ValueError("API key cannot be empty")
        if not self.endpoint.startswith(("http://", "https://")):
            raise ValueError("Endpoint must be an http(s) URL")
        if self.timeout_seconds <= 0:
            raise ValueError("Timeout must be positive")


@dataclass(frozen=True)
class AppConfig:
    """Non-sensitive application settings."""
    recipient_email: str
    recipient_name: str = ""
    database_path: str = "thought_app.db"
    analysis_category: str = Category.PROJECT.value
    log_level: str = "INFO"
    log_file: str = "logs/thoughts.log"

    def __post_init__(self) -> None:
        if not self.recipient_email.strip():
            raise ValueError("Digest recipient is required")
        if "@" not in self.recipient_email:
            raise ValueError(f"Digest recipient is not an email address: {self.recipient_email}")
        if not self.database_path.strip():
            raise ValueError("Database path cannot be empty")
        Category.parse(self.analysis_category)


class CredentialManager:
    """Stores credentials and configuration in one encrypted file."""

    def __init__(self, config_file: Path, master_password: str) -> None:
        """Bind the manager to one configuration file.

        Args:
            config_file: Where the sealed configuration lives.
            master_password: Password the file key is derived from.
        """
        self.config_file: Path = config_file
        self.encryption_manager: EncryptionManager = EncryptionManager(master_password)
        self._cached: Optional[tuple[EmailCredentials, AnalyzerCredentials, AppConfig]] = None

        logger.debug(f"Using encrypted configuration at {config_file}")

    def save_credentials(
        self,
        email_credentials: EmailCredentials,
        analyzer_credentials: AnalyzerCredentials,
        app_config: AppConfig
    ) -> None:
        """Encrypt and write all three sections to the config file.

        Raises:
            CredentialError: If saving fails.
        """
        try:
            config_data: Dict[str, Any] = {
                "email_credentials": asdict(email_credentials),
                "analyzer_credentials": asdict(analyzer_credentials),
                "app_config": asdict(app_config),
                "version": CONFIG_VERSION,
            }
            sealed: bytes = self.encryption_manager.seal(json.dumps(config_data, indent=2, sort_keys=True))

            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            self.config_file.write_bytes(sealed)

            self._cached = (email_credentials, analyzer_credentials, app_config)
            logger.info(f"Encrypted configuration written to {self.config_file}")

        except Exception as e:
            logger.error(f"Could not write {self.config_file}: {e}")
            raise CredentialError(f"Could not write configuration: {e}") from e

    def load_credentials(self) -> tuple[EmailCredentials, AnalyzerCredentials, AppConfig]:
        """Load and decrypt credentials and configuration.

        Raises:
            CredentialError: If the file is missing, the password is wrong or
                the content does not validate.
        """
        if self._cached is not None:
            return self._cached

        try:
            if not self.config_file.exists():
                raise FileNotFoundError(f"No configuration at {self.config_file}; run `thoughts setup` first")

            config_data: Dict[str, Any] = json.loads(
                self.encryption_manager.open_sealed(self.config_file.read_bytes())
            )

            version: str = config_data.get("version", CONFIG_VERSION)
            if version != CONFIG_VERSION:
                logger.warning(f"Configuration version {version} differs from {CONFIG_VERSION}")

            loaded = (
                EmailCredentials(**config_data["email_credentials"]),
                AnalyzerCredentials(**config_data["analyzer_credentials"]),
                AppConfig(**config_data["app_config"]),
            )
            self._cached = loaded

            logger.info(f"Configuration loaded from {self.config_file}")
            return loaded

        except DecryptionError as e:
            logger.error(f"Could not decrypt {self.config_file}")
            raise CredentialError("Could not decrypt configuration: wrong master password or damaged file") from e
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Configuration content is invalid: {e}")
            raise CredentialError(f"Configuration content is invalid: {e}") from e
        except Exception as e:
            logger.error(f"Could not read {self.config_file}: {e}")
            raise CredentialError(f"Could not read configuration: {e}") from e

    def config_exists(self) -> bool:
        return self.config_file.exists()

    def delete_config(self) -> None:
        """Remove the configuration file and forget cached values."""
        try:
            self.config_file.unlink(missing_ok=True)
            self._cached = None
            logger.info(f"Removed {self.config_file}")
        except OSError as e:
            logger.error(f"Could not remove {self.config_file}: {e}")
            raise CredentialError(f"Could not remove configuration: {e}") from e
