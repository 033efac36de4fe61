"""
Base column types and mixins shared by the models.

Keeps cross-database compatibility (SQLite for tests, PostgreSQL in
production). Timestamps are stored as epoch milliseconds, the unit every
caller of the key pool works in.
"""

import time
import uuid

from sqlalchemy import BigInteger, Column, String, Text
from sqlalchemy.dialects.postgresql import BYTEA
from sqlalchemy.types import TypeDecorator


def epoch_millis() -> int:
    """Return the current time as integer milliseconds since the epoch."""
    return int(time.time() * 1000)


class EncryptedBinary(TypeDecorator):
    """
    Cross-database encrypted binary type.
    Uses BYTEA for PostgreSQL and Text for SQLite.
    """

    impl = Text
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(BYTEA())
        else:
            return dialect.type_descriptor(Text())

    def process_bind_param(self, value, dialect):
        if dialect.name == "postgresql":
            return value
        # Fernet tokens are ASCII
        if isinstance(value, bytes):
            return value.decode("ascii")
        return value

    def process_result_value(self, value, dialect):
        # Decryption happens in utils.encryption_utils
        return value


class EpochTimestampMixin:
    """created_at/updated_at as epoch milliseconds."""

    created_at = Column(BigInteger, default=epoch_millis, nullable=False)
    updated_at = Column(BigInteger, default=epoch_millis, onupdate=epoch_millis, nullable=False)


class UUIDMixin:
    """Simple mixin for UUID primary keys."""

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
