"""Pydantic schemas for reading streaks."""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class StreakStatus(str, Enum):
    """Status of a streak."""

    ACTIVE = "active"  # Threshold met today
    AT_RISK = "at_risk"  # Streak alive, but no qualifying reading today yet
    ENDED = "ended"


class DailyAggregate(BaseModel):
    """Total pages read on one local calendar day."""

    date: date
    total_pages_read: int = Field(..., ge=0)

    model_config = {"frozen": True}


class StreakRecord(BaseModel):
    """Persisted streak summary for one user key."""

    user_key: str
    current_streak: int = Field(0, ge=0)
    longest_streak: int = Field(0, ge=0)
    last_activity_date: Optional[date] = None
    streak_start_date: Optional[date] = None
    total_days_active: int = Field(0, ge=0)
    daily_threshold: int = Field(1, ge=1, le=9999)
    streak_enabled: bool = False
    user_timezone: str

    model_config = {"from_attributes": True}

    @model_validator(mode="after")
    def check_streak_order(self) -> "StreakRecord":
        if self.current_streak > self.longest_streak:
            raise ValueError("current_streak cannot exceed longest_streak")
        return self


class StreakSummary(BaseModel):
    """Streak record enriched with display-only fields."""

    record: StreakRecord
    status: StreakStatus
    hours_remaining_today: int = Field(..., ge=0, le=24)
    pages_read_today: int = Field(0, ge=0)


class ActivityDay(BaseModel):
    """One day of the activity calendar."""

    date: date
    pages_read: int = Field(0, ge=0)
    threshold_met: bool = False
