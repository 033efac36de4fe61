"""Utility modules for the observer core."""

from .encryption_utils import decrypt_secret, encrypt_secret, generate_encryption_key
from .json_utils import dumps, loads
from .logger import (
    AzureQueueHandler,
    ContextAwareLogger,
    OwnerContextFilter,
    configure_logging,
    get_logger,
    reset_logging,
)

__all__ = [
    # Encryption utilities
    "encrypt_secret",
    "decrypt_secret",
    "generate_encryption_key",
    # JSON utilities
    "dumps",
    "loads",
    # Logging utilities
    "AzureQueueHandler",
    "ContextAwareLogger",
    "OwnerContextFilter",
    "configure_logging",
    "get_logger",
    "reset_logging",
]
