"""Password-based encryption for the secrets the review job needs."""

from __future__ import annotations

import base64
import secrets
from typing import Final

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from loguru import logger


class EncryptionError(Exception):
    """Raised when sealing data fails."""
    pass


class DecryptionError(EncryptionError):
    """Raised when a sealed blob cannot be opened."""
    pass


class EncryptionManager:
    """Seals and opens data with a Fernet key derived from a master password.

    A sealed blob is the random salt followed by the Fernet token, so one
    master password is all that is needed to open it again.
    """

    PBKDF2_ITERATIONS: Final[int] = 100_000
    SALT_LENGTH: Final[int] = 32
    KEY_LENGTH: Final[int] = 32

    def __init__(self, master_password: str) -> None:
        """Keep the master password for key derivation.

        Raises:
            ValueError: If the master password is shorter than 8 characters.
        """
        if not master_password or len(master_password.strip()) < 8:
            raise ValueError("Master password needs at least 8 characters")

        self._master_password: str = master_password.strip()

    def _fernet(self, salt: bytes) -> Fernet:
        kdf: PBKDF2HMAC = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=self.KEY_LENGTH,
            salt=salt,
            iterations=self.PBKDF2_ITERATIONS,
        )
        key: bytes = kdf.derive(self._master_password.encode("utf-8"))
        return Fernet(base64.urlsafe_b64encode(key))

    def seal(self, plaintext: str) -> bytes:
        """Encrypt text under a fresh salt.

        Returns:
            Salt followed by the Fernet token.

        Raises:
            EncryptionError: If encryption fails.
        """
        try:
            salt: bytes = secrets.token_bytes(self.SALT_LENGTH)
            token: bytes = self._fernet(salt).encrypt(plaintext.encode("utf-8"))
            logger.debug(f"Sealed {len(plaintext)} characters of data")
            return salt + token
        except Exception as e:
            logger.error(f"Sealing failed: {e}")
            raise EncryptionError(f"Could not seal data: {e}") from e

    def open_sealed(self, blob: bytes) -> str:
        """Decrypt a blob produced by ``seal``.

        Raises:
            DecryptionError: On a wrong password, a truncated blob or corrupt data.
        """
        if len(blob) <= self.SALT_LENGTH:
            raise DecryptionError("Sealed data is too short to contain a salt and token")

        salt: bytes = blob[:self.SALT_LENGTH]
        token: bytes = blob[self.SALT_LENGTH:]
        try:
            return self._fernet(salt).decrypt(token).decode("utf-8")
        except InvalidToken as e:
            logger.error("Sealed data rejected: wrong password or tampered blob")
            raise DecryptionError("Wrong master password or tampered data") from e
        except UnicodeDecodeError as e:
            logger.error(f"Opened data is not UTF-8 text: {e}")
            raise DecryptionError(f"Opened data is not UTF-8 text: {e}") from e
