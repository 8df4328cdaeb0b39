"""SQLite database operations.

Handles database connection, session management, and the progress
entry queries the streak engine consumes.
"""

import os
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Generator, Optional

from sqlalchemy import create_engine, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..exceptions import StorageError
from .models import Base, ProgressLog
from .schemas import ProgressEntry, ProgressEntryCreate, resolve_user_key

if TYPE_CHECKING:
    from ..streaks.boundary import DayBoundary


def _to_db_timestamp(value: datetime) -> datetime:
    """Convert an aware datetime to the naive UTC form stored in SQLite."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class Database:
    """Database connection and operations manager."""

    def __init__(self, db_path: Optional[str] = None):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file. If None, uses
                     PAGESTREAK_DB_PATH env var or default location.
        """
        if db_path is None:
            db_path = os.environ.get(
                "PAGESTREAK_DB_PATH",
                str(Path.home() / ".pagestreak" / "pagestreak.db"),
            )

        self.db_path = Path(db_path)
        self._is_memory = str(db_path) == ":memory:"

        if not self._is_memory:
            self._ensure_directory()

        # For in-memory databases, use StaticPool to reuse the same connection
        # This ensures all sessions share the same in-memory database
        if self._is_memory:
            self.engine = create_engine(
                "sqlite:///:memory:",
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                f"sqlite:///{self.db_path}",
                echo=False,
                connect_args={"check_same_thread": False},
            )
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables."""
        # Import streak models to register them with Base
        from ..streaks.models import Streak, StreakThreshold  # noqa: F401

        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StorageError(f"Cannot create tables: {e}") from e

    def drop_tables(self) -> None:
        """Drop all database tables. Use with caution!"""
        Base.metadata.drop_all(self.engine)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session context manager.

        Any SQLAlchemy failure is rolled back and re-raised as StorageError.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError(str(e)) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ========================================================================
    # Progress Entry Operations
    # ========================================================================

    def add_progress_entry(
        self,
        user_key: Optional[str],
        entry: ProgressEntryCreate,
        session: Optional[Session] = None,
    ) -> ProgressEntry:
        """Append a progress entry for a user."""

        def _create(s: Session) -> ProgressEntry:
            log = ProgressLog(
                user_key=resolve_user_key(user_key),
                book_id=entry.book_id,
                session_id=entry.session_id,
                pages_read=entry.pages_read,
                progress_timestamp=_to_db_timestamp(entry.progress_timestamp),
            )
            s.add(log)
            s.flush()
            return ProgressEntry.model_validate(log)

        if session:
            return _create(session)
        else:
            with self.get_session() as s:
                return _create(s)

    def list_all_entries(
        self, user_key: Optional[str], session: Optional[Session] = None
    ) -> list[ProgressEntry]:
        """Get the entire progress history for a user, oldest first."""

        def _get(s: Session) -> list[ProgressEntry]:
            stmt = (
                select(ProgressLog)
                .where(ProgressLog.user_key == resolve_user_key(user_key))
                .order_by(ProgressLog.progress_timestamp)
            )
            return [ProgressEntry.model_validate(log) for log in s.execute(stmt).scalars()]

        if session:
            return _get(session)
        else:
            with self.get_session() as s:
                return _get(s)

    def list_entries_for_date(
        self,
        user_key: Optional[str],
        day: date,
        boundary: "DayBoundary",
        session: Optional[Session] = None,
    ) -> list[ProgressEntry]:
        """Get progress entries whose local date (per ``boundary``) is ``day``."""
        start, end = boundary.day_window(day)

        def _get(s: Session) -> list[ProgressEntry]:
            stmt = (
                select(ProgressLog)
                .where(
                    ProgressLog.user_key == resolve_user_key(user_key),
                    ProgressLog.progress_timestamp >= _to_db_timestamp(start),
                    ProgressLog.progress_timestamp < _to_db_timestamp(end),
                )
                .order_by(ProgressLog.progress_timestamp)
            )
            return [ProgressEntry.model_validate(log) for log in s.execute(stmt).scalars()]

        if session:
            return _get(session)
        else:
            with self.get_session() as s:
                return _get(s)

    def get_earliest_progress_timestamp(
        self, user_key: Optional[str], session: Optional[Session] = None
    ) -> Optional[datetime]:
        """Get the timestamp of a user's first progress entry, if any."""

        def _get(s: Session) -> Optional[datetime]:
            stmt = select(func.min(ProgressLog.progress_timestamp)).where(
                ProgressLog.user_key == resolve_user_key(user_key)
            )
            earliest = s.execute(stmt).scalar_one_or_none()
            if earliest is None:
                return None
            return earliest.replace(tzinfo=timezone.utc)

        if session:
            return _get(session)
        else:
            with self.get_session() as s:
                return _get(s)


# Global database instance
_db: Optional[Database] = None


def get_db(db_path: Optional[str] = None) -> Database:
    """Get or create the global database instance."""
    global _db
    if _db is None:
        _db = Database(db_path)
        _db.create_tables()
    return _db


def reset_db() -> None:
    """Reset the global database instance. Used for testing."""
    global _db
    _db = None
