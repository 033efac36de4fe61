"""
Unit tests for configuration loading.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from observer_core.config import (
    AppConfig,
    LoggingConfig,
    NotificationConfig,
    get_config,
    reset_config,
    set_config,
)


class TestAppConfig:
    def test_defaults(self, monkeypatch):
        for name in ("APP_ENV", "DEBUG", "CREDIT_USAGE_URL", "RELAY_BASE_URL", "CONVEX_SITE_URL"):
            monkeypatch.delenv(name, raising=False)

        config = AppConfig()

        assert config.environment == "development"
        assert config.debug is False
        assert config.features.enable_operation_context is True
        assert config.key_pool.min_secret_length == 20
        assert config.key_pool.secret_prefix == "fc-"
        assert config.credit_provider.credit_usage_url == "https://api.firecrawl.dev/v1/team/credit-usage"
        assert config.notifications.relay_base_url == ""

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "production")
        monkeypatch.setenv("DEBUG", "true")
        monkeypatch.setenv("DATABASE_URL", "postgresql://db/observer")
        monkeypatch.setenv("ENABLE_LOGS_QUEUE", "true")
        monkeypatch.setenv("CREDENTIAL_ENCRYPTION_KEY", "abc")

        config = AppConfig.from_env()

        assert config.environment == "production"
        assert config.debug is True
        assert config.database.connection_string == "postgresql://db/observer"
        assert config.features.enable_logs_queue is True
        assert config.security.encryption_key == "abc"

    def test_custom_values(self):
        config = AppConfig()
        config.set_custom("region", "eu")

        assert config.get_custom("region") == "eu"
        assert config.get_custom("missing", "default") == "default"


class TestLoggingConfig:
    def test_level_normalized(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_invalid_level(self):
        with pytest.raises(PydanticValidationError):
            LoggingConfig(level="LOUD")


class TestNotificationConfig:
    def test_relay_falls_back_to_convex_site_url(self, monkeypatch):
        monkeypatch.delenv("RELAY_BASE_URL", raising=False)
        monkeypatch.setenv("CONVEX_SITE_URL", "https://happy-animal.convex.site")

        config = NotificationConfig()

        assert config.relay_url == "https://happy-animal.convex.site/api/webhook-proxy"

    def test_relay_url_strips_trailing_slash(self):
        config = NotificationConfig(relay_base_url="https://relay.example.com/")
        assert config.relay_url == "https://relay.example.com/api/webhook-proxy"


class TestGlobalConfig:
    def test_set_and_reset(self):
        custom = AppConfig(environment="staging")
        set_config(custom)
        assert get_config() is custom

        reset_config()
        assert get_config() is not custom
