"""
Scraping API key model.

Just the data structure. Ordering and selection rules live in
services.key_selector, persistence rules in services.key_store.
"""

from sqlalchemy import BigInteger, Boolean, Column, Index, Integer, String

from .db_base import EncryptedBinary, EpochTimestampMixin, UUIDMixin
from .db_config import Base


class ApiKeyCredential(Base, UUIDMixin, EpochTimestampMixin):
    """One API key in an owner's pool."""

    __tablename__ = "scrape_api_keys"

    owner_id = Column(String(100), nullable=False, index=True)
    encrypted_secret = Column(EncryptedBinary, nullable=False)
    label = Column(String(255), nullable=True)

    # 0..n-1 per owner, 0 is tried first
    priority = Column(Integer, nullable=False, default=0)
    is_exhausted = Column(Boolean, nullable=False, default=False)

    # Cached result of the last successful credit check
    remaining_credits = Column(Integer, nullable=True)
    last_credit_check_at = Column(BigInteger, nullable=True)
    last_used_at = Column(BigInteger, nullable=True)

    __table_args__ = (Index("ix_scrape_api_keys_owner_priority", "owner_id", "priority"),)

    def __repr__(self) -> str:
        return (
            f"ApiKeyCredential(id='{self.id}', owner_id='{self.owner_id}', "
            f"priority={self.priority}, is_exhausted={self.is_exhausted})"
        )
