"""
At-rest encryption for stored API keys.

Keys are encrypted with Fernet (AES-128-CBC + HMAC) using the key configured
in ``SecurityConfig.encryption_key``. Tokens are ASCII, so they round-trip
through the BYTEA column on PostgreSQL and the TEXT column on SQLite.
"""

from typing import Optional, Union

from cryptography.fernet import Fernet, InvalidToken

from ..config import get_config
from ..exceptions import ErrorCode, ServiceError


def _get_fernet(encryption_key: Optional[str] = None) -> Fernet:
    """Build a Fernet instance from an explicit key or the configured one."""
    key = encryption_key or get_config().security.encryption_key
    if not key:
        raise ServiceError(
            "CREDENTIAL_ENCRYPTION_KEY must be set to store API keys",
            error_code=ErrorCode.CONFIGURATION_ERROR,
            operation="encrypt_secret",
        )
    try:
        return Fernet(key.encode() if isinstance(key, str) else key)
    except (ValueError, TypeError) as e:
        raise ServiceError(
            "CREDENTIAL_ENCRYPTION_KEY is not a valid Fernet key",
            error_code=ErrorCode.CONFIGURATION_ERROR,
            operation="encrypt_secret",
            cause=e,
        ) from e


def generate_encryption_key() -> str:
    """Generate a new Fernet key suitable for CREDENTIAL_ENCRYPTION_KEY."""
    return Fernet.generate_key().decode()


def encrypt_secret(secret: str, encryption_key: Optional[str] = None) -> bytes:
    """
    Encrypt a raw API key.

    Args:
        secret: Plaintext key
        encryption_key: Optional key override (defaults to configuration)

    Returns:
        Fernet token bytes
    """
    return _get_fernet(encryption_key).encrypt(secret.encode("utf-8"))


def decrypt_secret(
    token: Union[bytes, str, memoryview], encryption_key: Optional[str] = None
) -> str:
    """
    Decrypt a stored API key.

    Raises:
        ServiceError: If the token was produced with a different key or is corrupt
    """
    if isinstance(token, memoryview):
        token = token.tobytes()
    if isinstance(token, str):
        token = token.encode("ascii")

    try:
        return _get_fernet(encryption_key).decrypt(token).decode("utf-8")
    except InvalidToken as e:
        raise ServiceError(
            "Failed to decrypt stored API key",
            error_code=ErrorCode.INTEGRATION_ERROR,
            operation="decrypt_secret",
            cause=e,
        ) from e
