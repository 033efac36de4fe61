"""
Email channel.

HTML comes from the user's custom template when one is set and renders
cleanly, otherwise from the built-in template. Delivery is delegated to an
EmailSender; ResendEmailClient is the shipped implementation.
"""

import html
import re
from typing import Any, Callable, Dict, Optional, Protocol

import nh3
import requests
from pydantic import BaseModel, ConfigDict, Field

from ..config import NotificationConfig, get_config
from ..constants import DestinationKind
from ..exceptions import ErrorCode, ProviderError, ServiceError, TemplateError, TransportError
from ..schemas.notification_schemas import ChangeDetectedEvent, EmailDestination
from .base import DeliveryResult, NotificationChannel
from .payloads import display_time

NOT_AVAILABLE = "N/A"

_PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")

TEMPLATE_PLACEHOLDERS = frozenset(
    {
        "websiteName",
        "websiteUrl",
        "changeDate",
        "changeType",
        "pageTitle",
        "viewChangesUrl",
        "aiMeaningfulScore",
        "aiIsMeaningful",
        "aiReasoning",
        "aiModel",
        "aiAnalyzedAt",
    }
)


class EmailMessage(BaseModel):
    """What an EmailSender is asked to deliver."""

    from_address: str = Field(..., alias="from")
    to: str
    subject: str
    html: str

    model_config = ConfigDict(populate_by_name=True)


class EmailSender(Protocol):
    """Anything that can deliver an EmailMessage. Failures must raise."""

    def send_email(self, message: EmailMessage) -> Dict[str, Any]: ...


class ResendEmailClient:
    """Sends email through the Resend HTTP API."""

    SERVICE_NAME = "resend"

    def __init__(
        self,
        api_key: Optional[str],
        http_session: Optional[requests.Session] = None,
        api_url: str = "https://api.resend.com/emails",
        timeout_seconds: int = 30,
    ):
        self.api_key = api_key
        self.http = http_session or requests.Session()
        self.api_url = api_url
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_config(
        cls,
        config: Optional[NotificationConfig] = None,
        http_session: Optional[requests.Session] = None,
    ) -> "ResendEmailClient":
        config = config or get_config().notifications
        return cls(
            api_key=config.resend_api_key,
            http_session=http_session,
            api_url=config.resend_api_url,
            timeout_seconds=config.timeout_seconds,
        )

    def send_email(self, message: EmailMessage) -> Dict[str, Any]:
        """
        Deliver one message.

        Returns:
            Resend's response body (contains the message ``id``)

        Raises:
            ServiceError: If no API key is configured
            TransportError: If Resend could not be reached
            ProviderError: If Resend rejected the message
        """
        if not self.api_key:
            raise ServiceError(
                "RESEND_API_KEY must be set to send email",
                error_code=ErrorCode.CONFIGURATION_ERROR,
                operation="send_email",
            )

        body = {
            "from": message.from_address,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }
        try:
            response = self.http.post(
                self.api_url,
                json=body,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            raise TransportError(
                f"Email request failed: {type(e).__name__}",
                service_name=self.SERVICE_NAME,
                error_code=(
                    ErrorCode.TIMEOUT_ERROR
                    if isinstance(e, requests.Timeout)
                    else ErrorCode.CONNECTION_ERROR
                ),
                cause=e,
            ) from e

        if not 200 <= response.status_code < 300:
            raise ProviderError(
                f"Email provider rejected message with status {response.status_code}",
                service_name=self.SERVICE_NAME,
                provider_status=response.status_code,
                response_body=response.text,
            )

        try:
            return response.json()
        except ValueError:
            return {}


def _allowed_attributes() -> Dict[str, set]:
    attributes = {tag: set(attrs) for tag, attrs in nh3.ALLOWED_ATTRIBUTES.items()}
    attributes.setdefault("*", set()).add("style")
    return attributes


def sanitize_html(markup: str) -> str:
    """Strip scripts, event handlers and unsafe URLs from user-supplied HTML."""
    return nh3.clean(markup, tags=set(nh3.ALLOWED_TAGS), attributes=_allowed_attributes())


def template_values(event: ChangeDetectedEvent, app_url: str) -> Dict[str, str]:
    """Placeholder values for a custom template, before escaping."""
    analysis = event.ai_analysis
    return {
        "websiteName": event.website.name,
        "websiteUrl": event.website.url,
        "changeDate": display_time(event.scraped_at),
        "changeType": event.change_status,
        "pageTitle": event.title or NOT_AVAILABLE,
        "viewChangesUrl": app_url,
        "aiMeaningfulScore": (
            f"{analysis.meaningful_change_score:g}" if analysis else NOT_AVAILABLE
        ),
        "aiIsMeaningful": "Yes" if analysis and analysis.is_meaningful_change else "No",
        "aiReasoning": (analysis.reasoning or NOT_AVAILABLE) if analysis else NOT_AVAILABLE,
        "aiModel": analysis.model if analysis else NOT_AVAILABLE,
        "aiAnalyzedAt": display_time(analysis.analyzed_at) if analysis else NOT_AVAILABLE,
    }


def _escape(value: str) -> str:
    return html.escape(value, quote=True)


def render_template(template: str, values: Dict[str, str]) -> str:
    """
    Substitute the known ``{{name}}`` placeholders with HTML-escaped values.

    Unknown placeholders and any other braces are left as literal text.

    Raises:
        TemplateError: If the template is not a string
    """
    if not isinstance(template, str):
        raise TemplateError("Template must be a string", template_type=type(template).__name__)

    def replace(match: "re.Match") -> str:
        name = match.group(1)
        if name not in TEMPLATE_PLACEHOLDERS or name not in values:
            return match.group(0)
        return _escape(values[name])

    return _PLACEHOLDER.sub(replace, template)


def default_template(event: ChangeDetectedEvent, app_url: str) -> str:
    """Built-in change alert HTML."""
    name = _escape(event.website.name)
    url = _escape(event.website.url)

    title_block = f"<p><strong>Page Title:</strong> {_escape(event.title)}</p>" if event.title else ""

    analysis_block = ""
    analysis = event.ai_analysis
    if analysis is not None:
        analysis_block = f"""
        <div style="background: #e8f4f8; border-left: 4px solid #2196F3; padding: 12px; margin: 15px 0;">
          <h4 style="margin: 0 0 8px 0; color: #1976D2;">AI Analysis</h4>
          <p><strong>Meaningful Change:</strong> {"Yes" if analysis.is_meaningful_change else "No"} ({analysis.meaningful_change_score:g}% score)</p>
          <p><strong>Reasoning:</strong> {_escape(analysis.reasoning)}</p>
          <p style="font-size: 12px; color: #666; margin: 8px 0 0 0;">Analyzed by {_escape(analysis.model)} at {display_time(analysis.analyzed_at)}</p>
        </div>"""

    return f"""
    <h2>Website Change Alert</h2>
    <p>We've detected changes on the website you're monitoring:</p>
    <div style="background: #f5f5f5; padding: 15px; border-radius: 8px; margin: 20px 0;">
      <h3>{name}</h3>
      <p><a href="{url}">{url}</a></p>
      <p><strong>Changed at:</strong> {display_time(event.scraped_at)}</p>
      {title_block}{analysis_block}
    </div>
    <p><a href="{_escape(app_url)}" style="background: #ff6600; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px;">View Changes</a></p>
    """


def configuration_check_html(app_name: str) -> str:
    name = html.escape(app_name)
    return f"""
    <div style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2 style="color: #EA580C;">Email Configuration Working!</h2>
      <p>This is a test email from {name}.</p>
      <p>If you received this, your email notifications are properly configured.</p>
      <hr style="border: none; border-top: 1px solid #E5E7EB; margin: 32px 0;">
      <p style="color: #9CA3AF; font-size: 12px;">{name} - Website Change Monitoring</p>
    </div>
    """


class EmailChannel(NotificationChannel):
    """Builds change alert emails and hands them to an EmailSender."""

    def __init__(
        self,
        sender: EmailSender,
        config: Optional[NotificationConfig] = None,
        sanitizer: Callable[[str], str] = sanitize_html,
    ):
        super().__init__()
        self.sender = sender
        self.config = config or get_config().notifications
        self.sanitizer = sanitizer

    @property
    def kind(self) -> DestinationKind:
        return DestinationKind.EMAIL

    @property
    def from_header(self) -> str:
        return f"{self.config.app_name} <{self.config.from_email}>"

    def build_html(self, event: ChangeDetectedEvent, custom_template: Optional[str] = None) -> str:
        """Render the custom template, falling back to the built-in one if nothing usable is left."""
        app_url = self.config.app_url
        if custom_template:
            try:
                rendered = render_template(custom_template, template_values(event, app_url))
                cleaned = self.sanitizer(rendered)
                if not cleaned.strip():
                    raise TemplateError("Custom template is empty after sanitizing")
                return cleaned
            except TemplateError as e:
                self.logger.warning(
                    "Custom email template rejected, using default template",
                    extra={"error_id": e.error_id, "website_id": event.website.id},
                )
        return default_template(event, app_url)

    def _send(self, message: EmailMessage) -> DeliveryResult:
        response, duration_ms = self._execute_with_timing(lambda: self.sender.send_email(message))
        self.logger.info("Email sent", extra={"to": message.to, "subject": message.subject})
        message_id = response.get("id") if isinstance(response, dict) else None
        return DeliveryResult.create_success(
            channel=DestinationKind.EMAIL,
            destination=message.to,
            execution_duration_ms=duration_ms,
            metadata={"message_id": message_id} if message_id else {},
        )

    def send_change(self, event: ChangeDetectedEvent, destination: EmailDestination) -> DeliveryResult:
        """
        Email a change alert. Sender failures propagate.
        """
        message = EmailMessage(
            from_address=self.from_header,
            to=destination.email,
            subject=f"Changes detected on {event.website.name}",
            html=self.build_html(event, destination.custom_template),
        )
        return self._send(message)

    def send_test_email(self, to: str) -> DeliveryResult:
        """Send a configuration check email."""
        message = EmailMessage(
            from_address=self.from_header,
            to=to,
            subject=f"Test Email from {self.config.app_name}",
            html=configuration_check_html(self.config.app_name),
        )
        return self._send(message)
