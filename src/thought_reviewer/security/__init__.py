"""Security package for thought review scheduler."""

from .encryption import EncryptionManager, DecryptionError, EncryptionError
from .credentials import (
    AnalyzerCredentials,
    AppConfig,
    CredentialError,
    CredentialManager,
    EmailCredentials,
)

__all__ = [
    # Encryption
    "EncryptionManager",
    "DecryptionError",
    "EncryptionError",
    # Credentials
    "CredentialManager",
    "CredentialError",
    "EmailCredentials",
    "AnalyzerCredentials",
    "AppConfig",
]
