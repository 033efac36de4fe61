"""
SQLAlchemy models and database management.

This module provides a common entry point for the persistence layer.
"""

from .db_base import EncryptedBinary, EpochTimestampMixin, UUIDMixin, epoch_millis
from .db_config import (
    Base,
    DatabaseManager,
    close_db,
    get_db_manager,
    get_development_config,
    import_all_models,
    init_db,
    initialize_db,
    set_db_manager,
)
from .db_credential_models import ApiKeyCredential

__all__ = [
    # Base definitions
    "Base",
    "EncryptedBinary",
    "EpochTimestampMixin",
    "UUIDMixin",
    "epoch_millis",
    # Configuration
    "DatabaseManager",
    "close_db",
    "get_db_manager",
    "get_development_config",
    "import_all_models",
    "init_db",
    "initialize_db",
    "set_db_manager",
    # Models
    "ApiKeyCredential",
]
