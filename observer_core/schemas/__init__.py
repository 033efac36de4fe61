"""Pydantic schemas for credentials and notifications."""

from .credential_schemas import (
    ActiveKey,
    ApiKeyCreate,
    ApiKeyRead,
    ApiKeyUpdate,
    CreditRefreshResult,
    LegacyKeyInfo,
)
from .notification_schemas import (
    AIAnalysis,
    ChangeDetectedEvent,
    ChangeDiff,
    CrawlCompletedEvent,
    Destination,
    EmailDestination,
    WebhookDestination,
    WebsiteRef,
)

__all__ = [
    # Credentials
    "ActiveKey",
    "ApiKeyCreate",
    "ApiKeyRead",
    "ApiKeyUpdate",
    "CreditRefreshResult",
    "LegacyKeyInfo",
    # Notifications
    "AIAnalysis",
    "ChangeDetectedEvent",
    "ChangeDiff",
    "CrawlCompletedEvent",
    "Destination",
    "EmailDestination",
    "WebhookDestination",
    "WebsiteRef",
]
