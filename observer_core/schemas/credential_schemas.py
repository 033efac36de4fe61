"""
Pydantic schemas for the scraping API key pool.

Read schemas never carry the raw secret. The only schema that does is
ActiveKey, which is handed to the scraping engine and the credit tracker.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..constants import KeyPoolLimits


class ApiKeyCreate(BaseModel):
    """Schema for adding a key to an owner's pool."""

    secret: str = Field(..., description="Raw API key as pasted by the user", repr=False)
    label: Optional[str] = Field(
        default=None, max_length=KeyPoolLimits.MAX_LABEL_LENGTH, description="Display name"
    )

    model_config = ConfigDict(str_strip_whitespace=True)


class ApiKeyUpdate(BaseModel):
    """Schema for editing label and/or exhaustion flag."""

    label: Optional[str] = Field(default=None, max_length=KeyPoolLimits.MAX_LABEL_LENGTH)
    is_exhausted: Optional[bool] = None

    model_config = ConfigDict(str_strip_whitespace=True)


class ApiKeyRead(BaseModel):
    """Schema for listing keys."""

    id: str = Field(..., description="Key ID")
    label: str = Field(..., description="Stored label or the generated 'Key N' label")
    masked_key: str = Field(..., description="First and last characters of the key")
    priority: int = Field(..., ge=0, description="0 is tried first")
    is_exhausted: bool = Field(default=False)
    remaining_credits: Optional[int] = Field(default=None)
    last_credit_check_at: Optional[int] = Field(default=None, description="Epoch ms")
    last_used_at: Optional[int] = Field(default=None, description="Epoch ms")
    created_at: int = Field(..., description="Epoch ms")
    updated_at: int = Field(..., description="Epoch ms")

    model_config = ConfigDict(from_attributes=True)


class ActiveKey(BaseModel):
    """A decrypted key ready for use against the provider."""

    id: str
    secret: str = Field(..., repr=False)
    priority: int
    label: Optional[str] = None


class LegacyKeyInfo(BaseModel):
    """Single-key summary kept for callers that predate the key pool."""

    has_key: bool
    masked_key: Optional[str] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None
    last_used_at: Optional[int] = None


class CreditRefreshResult(BaseModel):
    """Outcome of a credit refresh across one or more keys."""

    succeeded: bool
    total_remaining: int = Field(default=0, ge=0)
    error: Optional[str] = None
    checked: int = Field(default=0, ge=0, description="Keys whose balance was read")
    failed: int = Field(default=0, ge=0, description="Keys whose lookup failed")
