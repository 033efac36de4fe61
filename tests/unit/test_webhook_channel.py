"""
Tests for WebhookChannel direct and relayed delivery.
"""

from unittest.mock import Mock

import pytest
import requests

from observer_core.config import NotificationConfig
from observer_core.constants import DeliveryState, DestinationKind
from observer_core.exceptions import ErrorCode, ProviderError, ServiceError, TransportError
from observer_core.notifications.routing import Route
from observer_core.notifications.webhook import WebhookChannel

PRIVATE_URL = "http://192.168.1.5/hook"
PUBLIC_URL = "https://example.com/hook"
PAYLOAD = {"event": "website_changed"}

DIRECT = Route(kind=DestinationKind.GENERIC_WEBHOOK)
RELAYED = Route(kind=DestinationKind.GENERIC_WEBHOOK, via_relay=True)


def make_response(status_code=200, json_body=None, text=""):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = json_body
    response.text = text
    return response


@pytest.fixture
def channel(http, app_config):
    return WebhookChannel(http_session=http, config=app_config.notifications)


class TestDirectDelivery:
    def test_posts_payload_with_user_agent(self, channel, http, app_config):
        http.post.return_value = make_response(status_code=204)

        result = channel.deliver(PUBLIC_URL, PAYLOAD, DIRECT)

        assert result.success
        assert result.state == DeliveryState.DELIVERED
        assert result.status == 204
        assert result.via_relay is False
        assert result.destination == "https://example.com"

        args, kwargs = http.post.call_args
        assert args[0] == PUBLIC_URL
        assert kwargs["json"] == PAYLOAD
        assert kwargs["headers"]["User-Agent"] == app_config.notifications.user_agent
        assert kwargs["headers"]["Content-Type"] == "application/json"

    def test_non_2xx_raises_provider_error(self, channel, http):
        http.post.return_value = make_response(status_code=500, text="boom")

        with pytest.raises(ProviderError) as exc_info:
            channel.deliver(PUBLIC_URL, PAYLOAD, DIRECT)

        assert exc_info.value.provider_status == 500
        assert exc_info.value.response_body == "boom"

    def test_connection_error_raises_transport_error(self, channel, http):
        http.post.side_effect = requests.ConnectionError("refused")

        with pytest.raises(TransportError) as exc_info:
            channel.deliver(PUBLIC_URL, PAYLOAD, DIRECT)
        assert exc_info.value.error_code == ErrorCode.CONNECTION_ERROR

    def test_timeout_raises_transport_error(self, channel, http):
        http.post.side_effect = requests.Timeout("slow")

        with pytest.raises(TransportError) as exc_info:
            channel.deliver(PUBLIC_URL, PAYLOAD, DIRECT)
        assert exc_info.value.error_code == ErrorCode.TIMEOUT_ERROR


class TestRelayDelivery:
    def test_private_target_goes_through_relay(self, channel, http):
        http.post.return_value = make_response(json_body={"success": True, "status": 200})

        result = channel.deliver(PRIVATE_URL, PAYLOAD, RELAYED)

        assert result.success
        assert result.via_relay is True
        assert result.status == 200

        assert http.post.call_count == 1
        args, kwargs = http.post.call_args
        assert args[0] == "https://observer.example.com/api/webhook-proxy"
        assert kwargs["json"] == {"targetUrl": PRIVATE_URL, "payload": PAYLOAD}
        called_urls = [c.args[0] for c in http.post.call_args_list]
        assert PRIVATE_URL not in called_urls

    def test_relay_reports_failure(self, channel, http):
        http.post.return_value = make_response(json_body={"success": False, "status": 502})

        result = channel.deliver(PRIVATE_URL, PAYLOAD, RELAYED)

        assert not result.success
        assert result.state == DeliveryState.FAILED
        assert result.status == 502
        assert result.via_relay is True
        assert "502" in result.error_message

    def test_relay_non_2xx_raises_provider_error(self, channel, http):
        http.post.return_value = make_response(status_code=503, text="unavailable")

        with pytest.raises(ProviderError) as exc_info:
            channel.deliver(PRIVATE_URL, PAYLOAD, RELAYED)
        assert exc_info.value.provider_status == 503

    def test_relay_invalid_json(self, channel, http):
        response = make_response(text="<html>")
        response.json.side_effect = ValueError("not json")
        http.post.return_value = response

        with pytest.raises(ProviderError) as exc_info:
            channel.deliver(PRIVATE_URL, PAYLOAD, RELAYED)
        assert exc_info.value.error_code == ErrorCode.INVALID_FORMAT

    def test_missing_relay_configuration(self, http):
        channel = WebhookChannel(
            http_session=http, config=NotificationConfig(relay_base_url="", resend_api_key=None)
        )

        with pytest.raises(ServiceError) as exc_info:
            channel.deliver(PRIVATE_URL, PAYLOAD, RELAYED)

        assert exc_info.value.error_code == ErrorCode.CONFIGURATION_ERROR
        http.post.assert_not_called()

    def test_relay_base_url_trailing_slash(self, http):
        channel = WebhookChannel(
            http_session=http,
            config=NotificationConfig(relay_base_url="https://relay.example.com/", resend_api_key=None),
        )
        http.post.return_value = make_response(json_body={"success": True, "status": 200})

        channel.deliver(PRIVATE_URL, PAYLOAD, RELAYED)

        assert http.post.call_args.args[0] == "https://relay.example.com/api/webhook-proxy"


def test_repr(channel):
    assert repr(channel) == "WebhookChannel(kind='generic_webhook')"
