"""
Notification event and destination models.

Events are transient: built by the caller, consumed once by the dispatcher.
"""

import math
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..exceptions import ErrorCode, ValidationError


class WebsiteRef(BaseModel):
    id: str
    name: str
    url: str


class ChangeDiff(BaseModel):
    """Unified diff text plus the structured diff it was rendered from."""

    text: str = ""
    structured: Optional[Any] = Field(default=None, alias="json")

    model_config = ConfigDict(populate_by_name=True)


class AIAnalysis(BaseModel):
    meaningful_change_score: float
    is_meaningful_change: bool
    reasoning: str = ""
    analyzed_at: int = Field(..., description="Epoch ms")
    model: str


class ChangeDetectedEvent(BaseModel):
    """A page changed between two scrapes."""

    website: WebsiteRef
    scrape_result_id: str
    change_type: str = "content_changed"
    change_status: str = "changed"
    diff: Optional[ChangeDiff] = None
    title: Optional[str] = None
    description: Optional[str] = None
    markdown: str = ""
    scraped_at: int = Field(..., description="Epoch ms")
    ai_analysis: Optional[AIAnalysis] = None


class CrawlCompletedEvent(BaseModel):
    """A full-site crawl session finished."""

    website: WebsiteRef
    session_id: str
    started_at: int = Field(..., description="Epoch ms")
    completed_at: Optional[int] = Field(default=None, description="Epoch ms")
    pages_found: int = Field(default=0, ge=0)
    pages_changed: Optional[int] = None
    pages_added: Optional[int] = None
    pages_removed: Optional[int] = None

    @property
    def duration_seconds(self) -> Optional[int]:
        if self.completed_at is None:
            return None
        # Halves round up
        return math.floor((self.completed_at - self.started_at) / 1000 + 0.5)


class WebhookDestination(BaseModel):
    url: str

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("url")
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValidationError(
                "Webhook URL must start with http:// or https://",
                error_code=ErrorCode.INVALID_FORMAT,
                field="url",
                value=v,
            )
        return v


class EmailDestination(BaseModel):
    email: str
    custom_template: Optional[str] = Field(
        default=None, description="User HTML template with {{placeholder}} markers"
    )

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("email")
    def validate_email(cls, v: str) -> str:
        """
        Basic email validation.
        """
        if "@" not in v:
            raise ValidationError(
                "Invalid email address",
                error_code=ErrorCode.INVALID_FORMAT,
                field="email",
                value=v,
            )
        return v


Destination = Union[WebhookDestination, EmailDestination]
