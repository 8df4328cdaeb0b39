"""SQLAlchemy ORM models for local SQLite database.

Tables:
- progress_logs: Raw, append-only reading progress entries
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


class ProgressLog(Base):
    """Progress log model - one recorded reading event.

    ``progress_timestamp`` is stored as a naive UTC datetime.
    """

    __tablename__ = "progress_logs"
    __table_args__ = (Index("ix_progress_logs_user_timestamp", "user_key", "progress_timestamp"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_key: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    book_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    session_id: Mapped[Optional[str]] = mapped_column(String(36))
    pages_read: Mapped[int] = mapped_column(Integer, default=0)
    progress_timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Timestamps
    created_at: Mapped[str] = mapped_column(
        String(26), default=lambda: datetime.now(timezone.utc).isoformat()
    )

    def __repr__(self) -> str:
        return (
            f"<ProgressLog(id={self.id}, book_id={self.book_id}, "
            f"pages={self.pages_read}, at={self.progress_timestamp})>"
        )
