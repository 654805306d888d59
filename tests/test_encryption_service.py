"""Tests for encryption service."""

import os
from unittest.mock import patch

import pytest
from cryptography.fernet import Fernet, InvalidToken

from api_manager.errors import ConfigurationError
from api_manager.services.encryption_service import EncryptionService


def test_encryption_service_encrypt_decrypt():
    """Test that encryption service can encrypt and decrypt data."""
    service = EncryptionService(Fernet.generate_key().decode())

    plaintext = '[{"type": "api_key", "header_name": "X-Key", "header_value": "sk-test"}]'
    encrypted = service.encrypt(plaintext)

    # Encrypted should be different from plaintext
    assert encrypted != plaintext
    assert service.decrypt(encrypted) == plaintext


def test_encryption_service_multiple_values():
    """Test that encryption service handles multiple different values."""
    service = EncryptionService(Fernet.generate_key().decode())

    values = [
        "sk-openai-key-123",
        "very-long-api-key-" + "x" * 100,
        "short",
        "",
    ]

    for value in values:
        assert service.decrypt(service.encrypt(value)) == value


def test_decrypt_with_other_key_fails():
    """Test that ciphertext from another key is rejected."""
    ciphertext = EncryptionService(Fernet.generate_key().decode()).encrypt("secret")
    other = EncryptionService(Fernet.generate_key().decode())

    with pytest.raises(InvalidToken):
        other.decrypt(ciphertext)


def test_encryption_service_reads_settings_key():
    """Test that the key defaults to the configured ENCRYPTION_KEY."""
    test_key = Fernet.generate_key().decode()

    with patch("api_manager.services.encryption_service.settings") as mock_settings:
        mock_settings.encryption_key = test_key
        service = EncryptionService()

    assert service.decrypt(service.encrypt("value")) == "value"


def test_encryption_service_missing_key():
    """Test that a missing key is reported as a configuration error."""
    with pytest.raises(ConfigurationError, match="ENCRYPTION_KEY is not set"):
        EncryptionService("")


def test_encryption_service_invalid_key():
    """Test that a malformed key is reported as a configuration error."""
    with pytest.raises(ConfigurationError, match="Invalid ENCRYPTION_KEY format"):
        EncryptionService("invalid-key-format")


def test_settings_read_encryption_key_from_environment():
    """Test that Settings picks ENCRYPTION_KEY up from the environment."""
    from api_manager.config import Settings

    test_key = Fernet.generate_key().decode()
    with patch.dict(os.environ, {"ENCRYPTION_KEY": test_key, "PROXY_API_KEY": "proxy-key"}):
        settings = Settings(_env_file=None)

    assert settings.encryption_key == test_key
    assert settings.proxy_api_key == "proxy-key"
    assert settings.default_timeout_ms == 10000
