"""Key pool services."""

from . import key_selector
from .base_service import SessionManagedService
from .credit_tracker import CreditTracker, parse_remaining_credits
from .key_store import KeyStore

__all__ = [
    "CreditTracker",
    "KeyStore",
    "SessionManagedService",
    "key_selector",
    "parse_remaining_credits",
]
