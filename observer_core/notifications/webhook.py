"""
Webhook channel: POSTs JSON payloads directly or through the relay.

Private-network targets cannot be reached from where this runs, so they are
handed to the relay endpoint as ``{targetUrl, payload}`` and the relay's
``{success, status}`` answer becomes the result.
"""

from typing import Any, Dict, Optional

import requests

from ..config import NotificationConfig, get_config
from ..constants import DestinationKind
from ..exceptions import ErrorCode, ProviderError, ServiceError, TransportError
from .base import DeliveryResult, NotificationChannel
from .routing import Route, redact_url


class WebhookChannel(NotificationChannel):
    """Sends generic and Discord webhook payloads."""

    SERVICE_NAME = "webhook"
    RELAY_SERVICE_NAME = "webhook_relay"

    def __init__(
        self,
        http_session: Optional[requests.Session] = None,
        config: Optional[NotificationConfig] = None,
    ):
        super().__init__()
        self.http = http_session or requests.Session()
        self.config = config or get_config().notifications

    @property
    def kind(self) -> DestinationKind:
        return DestinationKind.GENERIC_WEBHOOK

    def deliver(self, url: str, payload: Dict[str, Any], route: Route) -> DeliveryResult:
        """
        Send an already-shaped payload to ``url``.

        Raises:
            TransportError: If the target or relay could not be reached
            ProviderError: If the target or relay answered non-2xx
        """
        if route.via_relay:
            return self._send_via_relay(url, payload, route)
        return self._send_direct(url, payload, route)

    def _post(self, url: str, body: Dict[str, Any], headers: Dict[str, str], service_name: str):
        try:
            return self.http.post(
                url, json=body, headers=headers, timeout=self.config.timeout_seconds
            )
        except requests.Timeout as e:
            raise TransportError(
                "Webhook request timed out",
                service_name=service_name,
                error_code=ErrorCode.TIMEOUT_ERROR,
                cause=e,
                target=redact_url(url),
            ) from e
        except requests.RequestException as e:
            raise TransportError(
                f"Webhook request failed: {type(e).__name__}",
                service_name=service_name,
                cause=e,
                target=redact_url(url),
            ) from e

    def _raise_for_status(self, response, target: str, service_name: str) -> None:
        if 200 <= response.status_code < 300:
            return
        self.logger.error(
            "Webhook delivery failed",
            extra={"target": target, "status_code": response.status_code},
        )
        raise ProviderError(
            f"Webhook failed with status {response.status_code}",
            service_name=service_name,
            provider_status=response.status_code,
            response_body=response.text,
            target=target,
        )

    def _send_direct(self, url: str, payload: Dict[str, Any], route: Route) -> DeliveryResult:
        target = redact_url(url)
        headers = {"Content-Type": "application/json", "User-Agent": self.config.user_agent}

        response, duration_ms = self._execute_with_timing(
            lambda: self._post(url, payload, headers, self.SERVICE_NAME)
        )
        self._raise_for_status(response, target, self.SERVICE_NAME)

        self.logger.info(
            "Webhook sent",
            extra={"target": target, "status_code": response.status_code, "kind": route.kind.value},
        )
        return DeliveryResult.create_success(
            channel=route.kind,
            destination=target,
            execution_duration_ms=duration_ms,
            status=response.status_code,
        )

    def _send_via_relay(self, url: str, payload: Dict[str, Any], route: Route) -> DeliveryResult:
        target = redact_url(url)
        if not self.config.relay_base_url:
            raise ServiceError(
                "Relay base URL is not configured; cannot reach private-network webhook",
                error_code=ErrorCode.CONFIGURATION_ERROR,
                operation="send_via_relay",
                target=target,
            )

        relay_url = self.config.relay_url
        self.logger.debug("Using webhook relay", extra={"target": target, "relay": relay_url})

        response, duration_ms = self._execute_with_timing(
            lambda: self._post(
                relay_url,
                {"targetUrl": url, "payload": payload},
                {"Content-Type": "application/json"},
                self.RELAY_SERVICE_NAME,
            )
        )
        self._raise_for_status(response, target, self.RELAY_SERVICE_NAME)

        try:
            reply = response.json()
        except ValueError as e:
            raise ProviderError(
                "Webhook relay returned invalid JSON",
                service_name=self.RELAY_SERVICE_NAME,
                provider_status=response.status_code,
                response_body=response.text,
                error_code=ErrorCode.INVALID_FORMAT,
                cause=e,
                target=target,
            ) from e

        reply = reply if isinstance(reply, dict) else {}
        status = reply.get("status")
        status = status if isinstance(status, int) and not isinstance(status, bool) else None

        if reply.get("success"):
            self.logger.info(
                "Webhook sent via relay",
                extra={"target": target, "status_code": status, "kind": route.kind.value},
            )
            return DeliveryResult.create_success(
                channel=route.kind,
                destination=target,
                execution_duration_ms=duration_ms,
                status=status,
                via_relay=True,
            )

        self.logger.warning(
            "Webhook relay reported failure",
            extra={"target": target, "status_code": status, "kind": route.kind.value},
        )
        return DeliveryResult.create_failure(
            channel=route.kind,
            destination=target,
            execution_duration_ms=duration_ms,
            error_message=f"Relay could not deliver webhook (status {status})",
            status=status,
            via_relay=True,
        )
