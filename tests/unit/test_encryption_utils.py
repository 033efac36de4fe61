"""
Unit tests for at-rest encryption of stored API keys.
"""

import pytest

from observer_core.config import SecurityConfig
from observer_core.exceptions import ErrorCode, ServiceError
from observer_core.utils.encryption_utils import (
    decrypt_secret,
    encrypt_secret,
    generate_encryption_key,
)


class TestEncryptSecret:
    def test_ciphertext_differs_from_plaintext(self):
        token = encrypt_secret("fc-00000000000000000abc")

        assert isinstance(token, bytes)
        assert b"fc-00000000000000000abc" not in token

    def test_decrypt_accepts_bytes_str_and_memoryview(self):
        token = encrypt_secret("fc-secret")

        assert decrypt_secret(token) == "fc-secret"
        assert decrypt_secret(token.decode("ascii")) == "fc-secret"
        assert decrypt_secret(memoryview(token)) == "fc-secret"

    def test_explicit_key_override(self):
        key = generate_encryption_key()
        token = encrypt_secret("fc-secret", encryption_key=key)
        assert decrypt_secret(token, encryption_key=key) == "fc-secret"


class TestEncryptionFailures:
    def test_wrong_key(self):
        token = encrypt_secret("fc-secret", encryption_key=generate_encryption_key())

        with pytest.raises(ServiceError) as exc_info:
            decrypt_secret(token, encryption_key=generate_encryption_key())
        assert exc_info.value.error_code == ErrorCode.INTEGRATION_ERROR

    def test_missing_key(self, app_config):
        app_config.security = SecurityConfig(encryption_key=None)

        with pytest.raises(ServiceError) as exc_info:
            encrypt_secret("fc-secret")
        assert exc_info.value.error_code == ErrorCode.CONFIGURATION_ERROR

    def test_malformed_key(self):
        with pytest.raises(ServiceError) as exc_info:
            encrypt_secret("fc-secret", encryption_key="not-a-fernet-key")
        assert exc_info.value.error_code == ErrorCode.CONFIGURATION_ERROR
