"""Outbound notifications: generic webhooks, Discord webhooks and email."""

from .base import DeliveryResult, NotificationChannel
from .discord import build_discord_change_payload, build_discord_crawl_payload
from .dispatcher import NotificationDispatcher
from .email_channel import (
    EmailChannel,
    EmailMessage,
    EmailSender,
    ResendEmailClient,
    render_template,
    sanitize_html,
)
from .payloads import build_change_payload, build_crawl_payload
from .routing import Route, classify_destination, is_discord_webhook, is_private_network_url
from .webhook import WebhookChannel

__all__ = [
    "DeliveryResult",
    "EmailChannel",
    "EmailMessage",
    "EmailSender",
    "NotificationChannel",
    "NotificationDispatcher",
    "ResendEmailClient",
    "Route",
    "WebhookChannel",
    "build_change_payload",
    "build_crawl_payload",
    "build_discord_change_payload",
    "build_discord_crawl_payload",
    "classify_destination",
    "is_discord_webhook",
    "is_private_network_url",
    "render_template",
    "sanitize_html",
]
