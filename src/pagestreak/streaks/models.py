"""SQLAlchemy models for reading streaks.

Tables:
- streaks: One streak summary per user key
- streak_thresholds: Daily threshold in effect from a given local date
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, generate_uuid


class Streak(Base):
    """Streak model - the persisted summary for one user key."""

    __tablename__ = "streaks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_key: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)

    # Streak counters
    current_streak: Mapped[int] = mapped_column(Integer, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0)
    total_days_active: Mapped[int] = mapped_column(Integer, default=0)

    # Streak dates
    last_activity_date: Mapped[Optional[str]] = mapped_column(String(10))  # ISO date
    streak_start_date: Mapped[Optional[str]] = mapped_column(String(10))  # ISO date

    # Settings
    daily_threshold: Mapped[int] = mapped_column(Integer, default=1)
    streak_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    user_timezone: Mapped[str] = mapped_column(String(64), nullable=False)

    # Timestamps
    created_at: Mapped[str] = mapped_column(
        String(26), default=lambda: datetime.now(timezone.utc).isoformat()
    )
    updated_at: Mapped[str] = mapped_column(
        String(26),
        default=lambda: datetime.now(timezone.utc).isoformat(),
        onupdate=lambda: datetime.now(timezone.utc).isoformat(),
    )

    def __repr__(self) -> str:
        return (
            f"<Streak(user_key={self.user_key}, current={self.current_streak}, "
            f"longest={self.longest_streak})>"
        )


class StreakThreshold(Base):
    """Threshold change - the daily threshold in effect from ``effective_date``."""

    __tablename__ = "streak_thresholds"
    __table_args__ = (UniqueConstraint("user_key", "effective_date"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_key: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    effective_date: Mapped[str] = mapped_column(String(10), nullable=False)  # ISO date
    threshold: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[str] = mapped_column(
        String(26), default=lambda: datetime.now(timezone.utc).isoformat()
    )

    def __repr__(self) -> str:
        return f"<StreakThreshold(user_key={self.user_key}, from={self.effective_date}, value={self.threshold})>"
