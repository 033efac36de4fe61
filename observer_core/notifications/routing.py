"""
Destination classification.

Each destination is classified once into a closed set of variants. Payload
formatting and sending dispatch on the resulting Route and never look at the
URL again.
"""

from dataclasses import dataclass
from urllib.parse import urlsplit

from ..constants import DISCORD_WEBHOOK_MARKER, PRIVATE_NETWORK_MARKERS, DestinationKind
from ..exceptions import ErrorCode, ValidationError
from ..schemas.notification_schemas import Destination, EmailDestination, WebhookDestination


@dataclass(frozen=True)
class Route:
    """Where and how a notification is sent."""

    kind: DestinationKind
    via_relay: bool = False


def is_private_network_url(url: str) -> bool:
    """
    True when the URL points somewhere only the relay can reach.

    Matches by substring anywhere in the URL, so a public URL that happens to
    contain a marker (``.../v10.api``) is relayed too.
    """
    return any(marker in url for marker in PRIVATE_NETWORK_MARKERS)


def is_discord_webhook(url: str) -> bool:
    return DISCORD_WEBHOOK_MARKER in url


def classify_destination(destination: Destination) -> Route:
    """
    Classify a destination into a Route.

    Raises:
        ValidationError: If the destination is not a known variant
    """
    if isinstance(destination, EmailDestination):
        return Route(kind=DestinationKind.EMAIL)

    if isinstance(destination, WebhookDestination):
        url = destination.url
        kind = (
            DestinationKind.DISCORD_WEBHOOK
            if is_discord_webhook(url)
            else DestinationKind.GENERIC_WEBHOOK
        )
        return Route(kind=kind, via_relay=is_private_network_url(url))

    raise ValidationError(
        f"Unsupported notification destination: {type(destination).__name__}",
        field="destination",
        error_code=ErrorCode.INVALID_FORMAT,
    )


def redact_url(url: str) -> str:
    """Reduce a webhook URL to its origin; Discord webhook paths carry a token."""
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return "<invalid-url>"
    return f"{parts.scheme}://{parts.netloc}"
