"""
Constants and enums for the observer core.

This module centralizes the magic strings and limits used by the key pool
and the notification dispatcher so they stay consistent across modules.
"""

from enum import Enum


class LogLevel(str, Enum):
    """Standard logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentVariable(str, Enum):
    """Standard environment variable names."""

    AZURE_STORAGE_CONNECTION = "AzureWebJobsStorage"
    DATABASE_URL = "DATABASE_URL"
    APP_ENV = "APP_ENV"
    LOG_LEVEL = "LOG_LEVEL"
    DEBUG = "DEBUG"
    CREDENTIAL_ENCRYPTION_KEY = "CREDENTIAL_ENCRYPTION_KEY"
    CREDIT_USAGE_URL = "CREDIT_USAGE_URL"
    RELAY_BASE_URL = "RELAY_BASE_URL"
    CONVEX_SITE_URL = "CONVEX_SITE_URL"
    FROM_EMAIL = "FROM_EMAIL"
    APP_NAME = "APP_NAME"
    APP_URL = "NEXT_PUBLIC_APP_URL"
    RESEND_API_KEY = "RESEND_API_KEY"
    ENABLE_LOGS_QUEUE = "ENABLE_LOGS_QUEUE"


class NotificationEventType(str, Enum):
    """Event names carried in generic webhook payloads."""

    WEBSITE_CHANGED = "website_changed"
    CRAWL_COMPLETED = "crawl_completed"


class DestinationKind(str, Enum):
    """Closed set of notification destination variants."""

    GENERIC_WEBHOOK = "generic_webhook"
    DISCORD_WEBHOOK = "discord_webhook"
    EMAIL = "email"


class DeliveryState(str, Enum):
    """States a single notification delivery attempt moves through."""

    BUILDING = "building"
    ROUTING = "routing"
    SENDING = "sending"
    DELIVERED = "delivered"
    FAILED = "failed"


# Substrings that mark a webhook URL as unreachable from the calling environment.
PRIVATE_NETWORK_MARKERS = (
    "localhost",
    "127.0.0.1",
    "0.0.0.0",
    "192.168.",
    "10.",
    "172.",
)

DISCORD_WEBHOOK_MARKER = "discord.com/api/webhooks"


class KeyPoolLimits:
    """Credential validation and masking limits."""

    MIN_SECRET_LENGTH = 20
    SECRET_PREFIX = "fc-"
    MASK_HEAD = 8
    MASK_TAIL = 4
    MASK_PLACEHOLDER = "********"
    MAX_LABEL_LENGTH = 255


class PayloadLimits:
    """Truncation limits applied while building notification payloads."""

    SUMMARY_CHARS = 200
    MARKDOWN_CHARS = 1000
    DISCORD_FIELD_CHARS = 1000
    DISCORD_FIELD_HEADROOM = 20
    DISCORD_REASONING_CHARS = 180
    DISCORD_TITLE_CHARS = 200
    DISCORD_WEBSITE_NAME_CHARS = 100
    ELLIPSIS = "..."


class DiscordColor:
    """Embed colours used for Discord notifications."""

    DEFAULT = 0xEA580C
    MEANINGFUL = 0xEF4444
    NOT_MEANINGFUL = 0x6B7280
    CRAWL_COMPLETED = 0x22C55E


class Timeouts:
    """Timeout values in seconds."""

    EXTERNAL_API_CALL = 30
