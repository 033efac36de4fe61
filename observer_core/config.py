"""
Centralized configuration management for the observer core.

This module provides a unified configuration system with support for:
- Environment variables
- Feature flags
- Validation using Pydantic
"""

import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from .constants import EnvironmentVariable, KeyPoolLimits, LogLevel, Timeouts


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    connection_string: str = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.DATABASE_URL.value, "sqlite:///./observer_core.db"
        ),
        description="Database connection string",
    )
    pool_size: int = Field(default=5, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum overflow connections")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    echo: bool = Field(default=False, description="Echo SQL statements")


class QueueConfig(BaseModel):
    """Azure Storage Queue configuration used by the log queue handler."""

    connection_string: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.AZURE_STORAGE_CONNECTION.value, ""),
        description="Azure Storage connection string",
    )
    logs_queue_name: str = Field(default="logs-queue", description="Logs queue name")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.LOG_LEVEL.value, LogLevel.INFO.value),
        description="Logging level",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )

    @field_validator("level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {level.value for level in LogLevel}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class FeatureFlags(BaseModel):
    """Feature flags for controlling runtime behavior."""

    enable_logs_queue: bool = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.ENABLE_LOGS_QUEUE.value, "false").lower()
        == "true",
        description="Ship structured logs to an Azure Storage Queue",
    )
    enable_operation_context: bool = Field(
        default=True, description="Enable operation context logging"
    )


class SecurityConfig(BaseModel):
    """Security-related configuration."""

    encryption_key: Optional[str] = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.CREDENTIAL_ENCRYPTION_KEY.value),
        description="Fernet key (urlsafe base64) used to encrypt stored API keys",
    )


class KeyPoolConfig(BaseModel):
    """Rules for accepting and labelling scraping API keys."""

    min_secret_length: int = Field(
        default=KeyPoolLimits.MIN_SECRET_LENGTH, ge=1, description="Minimum key length"
    )
    secret_prefix: str = Field(
        default=KeyPoolLimits.SECRET_PREFIX, description="Required provider key prefix"
    )
    default_label_template: str = Field(
        default="Key {n}", description="Label shown for unnamed keys, n is 1-based"
    )
    legacy_label: str = Field(
        default="Default Key", description="Label given to keys created by the legacy setter"
    )


class CreditProviderConfig(BaseModel):
    """External credit-usage endpoint configuration."""

    credit_usage_url: str = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.CREDIT_USAGE_URL.value,
            "https://api.firecrawl.dev/v1/team/credit-usage",
        ),
        description="GET endpoint returning remaining credits for a bearer key",
    )
    timeout_seconds: int = Field(
        default=Timeouts.EXTERNAL_API_CALL, gt=0, description="Request timeout"
    )


class NotificationConfig(BaseModel):
    """Outbound notification configuration."""

    relay_base_url: str = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.RELAY_BASE_URL.value,
            os.getenv(EnvironmentVariable.CONVEX_SITE_URL.value, ""),
        ),
        description="Base URL of the server-side relay for private-network webhooks",
    )
    relay_path: str = Field(default="/api/webhook-proxy", description="Relay endpoint path")
    from_email: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.FROM_EMAIL.value, "noreply@example.com"),
        description="Sender address for email notifications",
    )
    app_name: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.APP_NAME.value, "Firecrawl Observer"),
        description="Product name shown in notifications",
    )
    app_url: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.APP_URL.value, "http://localhost:3000"),
        description="Link target for 'view changes' buttons",
    )
    user_agent: str = Field(default="Firecrawl-Observer/1.0", description="Webhook User-Agent")
    timeout_seconds: int = Field(
        default=Timeouts.EXTERNAL_API_CALL, gt=0, description="Request timeout"
    )
    resend_api_key: Optional[str] = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.RESEND_API_KEY.value),
        description="API key for the Resend email API",
    )
    resend_api_url: str = Field(
        default="https://api.resend.com/emails", description="Resend send-email endpoint"
    )

    @property
    def relay_url(self) -> str:
        """Full URL of the webhook relay endpoint."""
        return f"{self.relay_base_url.rstrip('/')}{self.relay_path}"


class AppConfig(BaseModel):
    """Main application configuration."""

    environment: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.APP_ENV.value, "development"),
        description="Application environment",
    )
    debug: bool = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.DEBUG.value, "false").lower() == "true",
        description="Debug mode",
    )

    # Sub-configurations
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    queue: QueueConfig = Field(default_factory=QueueConfig, description="Queue configuration")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    features: FeatureFlags = Field(default_factory=FeatureFlags, description="Feature flags")
    security: SecurityConfig = Field(
        default_factory=SecurityConfig, description="Security configuration"
    )
    key_pool: KeyPoolConfig = Field(default_factory=KeyPoolConfig, description="Key pool rules")
    credit_provider: CreditProviderConfig = Field(
        default_factory=CreditProviderConfig, description="Credit provider configuration"
    )
    notifications: NotificationConfig = Field(
        default_factory=NotificationConfig, description="Notification configuration"
    )

    # Custom configuration
    custom: Dict[str, Any] = Field(default_factory=dict, description="Custom configuration values")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        return cls()

    def get_custom(self, key: str, default: Any = None) -> Any:
        """Get a custom configuration value."""
        return self.custom.get(key, default)

    def set_custom(self, key: str, value: Any) -> None:
        """Set a custom configuration value."""
        self.custom[key] = value


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None
