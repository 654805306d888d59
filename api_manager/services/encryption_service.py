"""Fernet encryption for stored auth descriptors."""

from typing import Optional

from cryptography.fernet import Fernet

from api_manager.config import settings
from api_manager.errors import ConfigurationError

KEY_HINT = (
    "Generate a key with: python -c \"from cryptography.fernet import Fernet; "
    "print(Fernet.generate_key().decode())\""
)


class EncryptionService:
    """Encrypts and decrypts credential blobs with one Fernet key."""

    def __init__(self, encryption_key: Optional[str] = None):
        """Build the Fernet cipher.

        Args:
            encryption_key: Fernet key; defaults to ``settings.encryption_key``.

        Raises:
            ConfigurationError: If the key is missing or not a valid Fernet key.
        """
        key = encryption_key if encryption_key is not None else settings.encryption_key
        if not key:
            raise ConfigurationError(f"ENCRYPTION_KEY is not set. {KEY_HINT}")
        try:
            self._fernet = Fernet(key.encode())
        except ValueError as e:
            raise ConfigurationError(f"Invalid ENCRYPTION_KEY format: {e}. {KEY_HINT}")

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a token produced by :meth:`encrypt`.

        Raises:
            InvalidToken: If the ciphertext was made with another key or is corrupted.
        """
        return self._fernet.decrypt(ciphertext.encode()).decode()
