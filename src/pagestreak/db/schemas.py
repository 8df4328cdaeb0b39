"""Pydantic schemas for progress entries."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_USER_KEY = "default"


def resolve_user_key(user_key: Optional[str]) -> str:
    """Map the single-user ``None`` key onto its sentinel value."""
    return DEFAULT_USER_KEY if user_key is None else user_key


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ProgressEntryCreate(BaseModel):
    """Schema for recording a reading progress entry."""

    book_id: str = Field(..., min_length=1)
    session_id: Optional[str] = None
    pages_read: int = Field(..., ge=0)
    progress_timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("progress_timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class ProgressEntry(BaseModel):
    """A stored progress entry. Immutable once created."""

    id: str
    book_id: str
    session_id: Optional[str] = None
    pages_read: int = Field(..., ge=0)
    progress_timestamp: datetime

    model_config = {"from_attributes": True, "frozen": True}

    @field_validator("progress_timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)
