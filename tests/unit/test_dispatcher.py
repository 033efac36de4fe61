"""
Tests for NotificationDispatcher routing and formatter selection.
"""

from unittest.mock import Mock

import pytest

from observer_core.constants import DestinationKind
from observer_core.exceptions import ProviderError, TransportError, ValidationError
from observer_core.notifications import NotificationDispatcher
from observer_core.notifications.base import DeliveryResult
from observer_core.notifications.email_channel import EmailChannel
from observer_core.notifications.routing import Route
from observer_core.notifications.webhook import WebhookChannel
from observer_core.schemas import EmailDestination, WebhookDestination
from tests.fixtures.factories import ChangeDetectedEventFactory, CrawlCompletedEventFactory

DISCORD_URL = "https://discord.com/api/webhooks/123/token"


def delivered(kind):
    return DeliveryResult.create_success(
        channel=kind, destination="x", execution_duration_ms=1.0, status=200
    )


@pytest.fixture
def change_event():
    return ChangeDetectedEventFactory()


@pytest.fixture
def crawl_event():
    return CrawlCompletedEventFactory()


@pytest.fixture
def webhook_channel():
    channel = Mock(spec=WebhookChannel)
    channel.deliver.return_value = delivered(DestinationKind.GENERIC_WEBHOOK)
    return channel


@pytest.fixture
def email_channel():
    channel = Mock(spec=EmailChannel)
    channel.send_change.return_value = delivered(DestinationKind.EMAIL)
    channel.send_test_email.return_value = delivered(DestinationKind.EMAIL)
    return channel


@pytest.fixture
def dispatcher(webhook_channel, email_channel):
    return NotificationDispatcher(webhook_channel, email_channel)


class TestNotifyChange:
    def test_generic_webhook_gets_generic_payload(self, dispatcher, webhook_channel, change_event):
        dispatcher.notify_change(change_event, WebhookDestination(url="https://example.com/hook"))

        url, payload, route = webhook_channel.deliver.call_args.args
        assert url == "https://example.com/hook"
        assert payload["event"] == "website_changed"
        assert route == Route(kind=DestinationKind.GENERIC_WEBHOOK)

    def test_discord_webhook_gets_embed(self, dispatcher, webhook_channel, change_event):
        dispatcher.notify_change(change_event, WebhookDestination(url=DISCORD_URL))

        _, payload, route = webhook_channel.deliver.call_args.args
        assert "embeds" in payload
        assert "event" not in payload
        assert route.kind == DestinationKind.DISCORD_WEBHOOK

    def test_private_webhook_routed_via_relay(self, dispatcher, webhook_channel, change_event):
        dispatcher.notify_change(change_event, WebhookDestination(url="http://10.0.0.4:8080/hook"))

        _, _, route = webhook_channel.deliver.call_args.args
        assert route.via_relay is True

    def test_email_destination(self, dispatcher, webhook_channel, email_channel, change_event):
        destination = EmailDestination(email="user@example.com")

        result = dispatcher.notify_change(change_event, destination)

        assert result.channel == DestinationKind.EMAIL
        email_channel.send_change.assert_called_once_with(change_event, destination)
        webhook_channel.deliver.assert_not_called()

    def test_webhook_errors_are_reraised(self, dispatcher, webhook_channel, change_event):
        webhook_channel.deliver.side_effect = TransportError("down", service_name="webhook")

        with pytest.raises(TransportError):
            dispatcher.notify_change(change_event, WebhookDestination(url="https://example.com/hook"))

    def test_email_errors_are_reraised(self, dispatcher, email_channel, change_event):
        email_channel.send_change.side_effect = ProviderError("rejected", service_name="resend")

        with pytest.raises(ProviderError):
            dispatcher.notify_change(change_event, EmailDestination(email="user@example.com"))


class TestNotifyCrawl:
    def test_generic_webhook(self, dispatcher, webhook_channel, crawl_event):
        dispatcher.notify_crawl(crawl_event, WebhookDestination(url="https://example.com/hook"))

        _, payload, _ = webhook_channel.deliver.call_args.args
        assert payload["event"] == "crawl_completed"
        assert payload["crawlSummary"]["duration"] == "5s"

    def test_discord_webhook(self, dispatcher, webhook_channel, crawl_event):
        dispatcher.notify_crawl(crawl_event, WebhookDestination(url=DISCORD_URL))

        _, payload, _ = webhook_channel.deliver.call_args.args
        assert payload["embeds"][0]["title"] == "Crawl Completed: Example"

    def test_email_destination_rejected(self, dispatcher, email_channel, webhook_channel, crawl_event):
        with pytest.raises(ValidationError):
            dispatcher.notify_crawl(crawl_event, EmailDestination(email="user@example.com"))

        webhook_channel.deliver.assert_not_called()
        email_channel.send_change.assert_not_called()


class TestSendTestEmail:
    def test_sends(self, dispatcher, email_channel):
        dispatcher.send_test_email("user@example.com")
        email_channel.send_test_email.assert_called_once_with("user@example.com")

    def test_invalid_address(self, dispatcher, email_channel):
        with pytest.raises(ValidationError):
            dispatcher.send_test_email("not-an-address")
        email_channel.send_test_email.assert_not_called()


class TestEndToEnd:
    def test_private_webhook_through_relay(self, app_config, change_event, http):
        response = Mock(status_code=200, text="")
        response.json.return_value = {"success": True, "status": 200}
        http.post.return_value = response
        dispatcher = NotificationDispatcher.from_config(app_config.notifications, http_session=http)

        result = dispatcher.notify_change(
            change_event, WebhookDestination(url="http://192.168.1.5/hook")
        )

        assert result.success
        assert result.via_relay
        args, kwargs = http.post.call_args
        assert args[0] == app_config.notifications.relay_url
        assert kwargs["json"]["targetUrl"] == "http://192.168.1.5/hook"
        assert kwargs["json"]["payload"]["event"] == "website_changed"
