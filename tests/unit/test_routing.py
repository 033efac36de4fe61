"""
Tests for destination classification.
"""

import pytest

from observer_core.constants import DestinationKind
from observer_core.exceptions import ValidationError
from observer_core.notifications.routing import (
    Route,
    classify_destination,
    is_private_network_url,
    redact_url,
)
from observer_core.schemas import EmailDestination, WebhookDestination


class TestClassifyDestination:
    def test_email(self):
        route = classify_destination(EmailDestination(email="user@example.com"))
        assert route == Route(kind=DestinationKind.EMAIL, via_relay=False)

    def test_public_generic_webhook(self):
        route = classify_destination(WebhookDestination(url="https://example.com/hook"))
        assert route == Route(kind=DestinationKind.GENERIC_WEBHOOK, via_relay=False)

    def test_private_generic_webhook(self):
        route = classify_destination(WebhookDestination(url="http://192.168.1.5/hook"))
        assert route == Route(kind=DestinationKind.GENERIC_WEBHOOK, via_relay=True)

    def test_discord_webhook(self):
        route = classify_destination(
            WebhookDestination(url="https://discord.com/api/webhooks/123/token")
        )
        assert route == Route(kind=DestinationKind.DISCORD_WEBHOOK, via_relay=False)

    def test_unknown_destination(self):
        with pytest.raises(ValidationError):
            classify_destination("https://example.com/hook")


class TestPrivateNetwork:
    @pytest.mark.parametrize(
        "url",
        [
            "http://localhost:8080/hook",
            "http://127.0.0.1/hook",
            "http://0.0.0.0:3000/hook",
            "http://192.168.1.5/hook",
            "http://10.0.0.12/hook",
            "http://172.16.4.2/hook",
        ],
    )
    def test_private_urls(self, url):
        assert is_private_network_url(url)

    @pytest.mark.parametrize(
        "url",
        ["https://example.com/hook", "https://hooks.slack.com/services/T000/B000/XXX"],
    )
    def test_public_urls(self, url):
        assert not is_private_network_url(url)


class TestRedactUrl:
    def test_drops_path_and_query(self):
        assert (
            redact_url("https://discord.com/api/webhooks/123/secret-token?wait=true")
            == "https://discord.com"
        )

    def test_invalid_url(self):
        assert redact_url("not a url") == "<invalid-url>"
