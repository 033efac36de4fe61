"""
Notification dispatcher.

One delivery attempt per call, no retries:

    BUILDING -> ROUTING -> SENDING -> DELIVERED | FAILED

The destination is classified once, then a single formatter per destination
variant shapes the payload. Provider and transport errors are logged here and
re-raised so the scheduler can alert or retry.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional

import requests

from ..config import NotificationConfig, get_config
from ..constants import DeliveryState, DestinationKind
from ..context.operation_context import operation
from ..exceptions import ErrorCode, ProviderError, TransportError, ValidationError
from ..schemas.notification_schemas import (
    ChangeDetectedEvent,
    CrawlCompletedEvent,
    Destination,
    EmailDestination,
)
from ..utils.logger import get_logger
from .base import DeliveryResult
from .discord import build_discord_change_payload, build_discord_crawl_payload
from .email_channel import EmailChannel, ResendEmailClient
from .payloads import build_change_payload, build_crawl_payload
from .routing import Route, classify_destination, redact_url
from .webhook import WebhookChannel

Formatter = Callable[[Any, Optional[datetime]], Dict[str, Any]]

CHANGE_FORMATTERS: Dict[DestinationKind, Formatter] = {
    DestinationKind.GENERIC_WEBHOOK: build_change_payload,
    DestinationKind.DISCORD_WEBHOOK: build_discord_change_payload,
}

CRAWL_FORMATTERS: Dict[DestinationKind, Formatter] = {
    DestinationKind.GENERIC_WEBHOOK: build_crawl_payload,
    DestinationKind.DISCORD_WEBHOOK: build_discord_crawl_payload,
}


class NotificationDispatcher:
    """Formats events and sends them to webhook or email destinations."""

    def __init__(self, webhook_channel: WebhookChannel, email_channel: EmailChannel):
        self.webhook_channel = webhook_channel
        self.email_channel = email_channel
        self.logger = get_logger()

    @classmethod
    def from_config(
        cls,
        config: Optional[NotificationConfig] = None,
        http_session: Optional[requests.Session] = None,
    ) -> "NotificationDispatcher":
        """Build a dispatcher whose channels share one HTTP session."""
        config = config or get_config().notifications
        http_session = http_session or requests.Session()
        email_client = ResendEmailClient.from_config(config, http_session=http_session)
        return cls(
            webhook_channel=WebhookChannel(http_session=http_session, config=config),
            email_channel=EmailChannel(email_client, config=config),
        )

    def _log_state(self, state: DeliveryState, route: Optional[Route], **extra) -> None:
        self.logger.debug(
            f"Notification {state.value}",
            extra={"state": state.value, "kind": route.kind.value if route else None, **extra},
        )

    def _send_webhook(
        self,
        event: Any,
        destination: Destination,
        route: Route,
        formatters: Dict[DestinationKind, Formatter],
    ) -> DeliveryResult:
        target = redact_url(destination.url)

        self._log_state(DeliveryState.BUILDING, route, target=target)
        payload = formatters[route.kind](event, None)

        self._log_state(DeliveryState.SENDING, route, target=target, via_relay=route.via_relay)
        try:
            result = self.webhook_channel.deliver(destination.url, payload, route)
        except (ProviderError, TransportError) as e:
            self.logger.error(
                "Notification failed",
                extra={
                    "state": DeliveryState.FAILED.value,
                    "kind": route.kind.value,
                    "target": target,
                    "error_id": e.error_id,
                },
            )
            raise

        self._log_state(result.state, route, target=target, status=result.status)
        return result

    @operation()
    def notify_change(
        self, event: ChangeDetectedEvent, destination: Destination
    ) -> DeliveryResult:
        """
        Send a change-detected notification.

        Returns:
            DeliveryResult; ``success=False`` when the relay reports it could not deliver

        Raises:
            ProviderError: If the webhook target or email provider answered non-2xx
            TransportError: If it could not be reached
        """
        self._log_state(DeliveryState.ROUTING, None, website_id=event.website.id)
        route = classify_destination(destination)

        if route.kind is DestinationKind.EMAIL:
            self._log_state(DeliveryState.SENDING, route, website_id=event.website.id)
            try:
                return self.email_channel.send_change(event, destination)
            except (ProviderError, TransportError) as e:
                self.logger.error(
                    "Notification failed",
                    extra={
                        "state": DeliveryState.FAILED.value,
                        "kind": route.kind.value,
                        "error_id": e.error_id,
                    },
                )
                raise

        return self._send_webhook(event, destination, route, CHANGE_FORMATTERS)

    @operation()
    def notify_crawl(
        self, event: CrawlCompletedEvent, destination: Destination
    ) -> DeliveryResult:
        """
        Send a crawl-completed notification. Only webhook destinations are supported.

        Raises:
            ValidationError: If the destination is an email address
        """
        self._log_state(DeliveryState.ROUTING, None, website_id=event.website.id)
        route = classify_destination(destination)

        if route.kind is DestinationKind.EMAIL:
            raise ValidationError(
                "Crawl notifications can only be sent to webhooks",
                field="destination",
                error_code=ErrorCode.INVALID_FORMAT,
            )

        return self._send_webhook(event, destination, route, CRAWL_FORMATTERS)

    @operation()
    def send_test_email(self, to: str) -> DeliveryResult:
        """Send a configuration check email to ``to``."""
        destination = EmailDestination(email=to)
        return self.email_channel.send_test_email(destination.email)
