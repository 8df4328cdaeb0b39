"""Pytest configuration and shared fixtures.

This module provides fixtures for testing the streak engine, including
in-memory databases, streak managers and a progress-entry factory.
"""

import os
import tempfile
from datetime import date, datetime, time
from pathlib import Path
from typing import Callable, Generator, Optional
from zoneinfo import ZoneInfo

import pytest

from pagestreak.config import reset_config
from pagestreak.db.schemas import ProgressEntry, ProgressEntryCreate
from pagestreak.db.sqlite import Database, reset_db
from pagestreak.streaks.manager import StreakManager
from pagestreak.streaks.store import StreakStore


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)
    yield db_path
    # Cleanup
    if db_path.exists():
        db_path.unlink()


@pytest.fixture(scope="function")
def file_db(temp_db_path: Path) -> Generator[Database, None, None]:
    """Create a file-backed test database instance."""
    # Reset any global state
    reset_db()
    reset_config()

    os.environ["PAGESTREAK_DB_PATH"] = str(temp_db_path)

    database = Database(str(temp_db_path))
    database.create_tables()
    yield database

    # Cleanup
    reset_db()
    database.engine.dispose()
    if "PAGESTREAK_DB_PATH" in os.environ:
        del os.environ["PAGESTREAK_DB_PATH"]


@pytest.fixture
def db() -> Database:
    """Create an in-memory database for testing."""
    database = Database(":memory:")
    database.create_tables()
    return database


# ============================================================================
# Streak Fixtures
# ============================================================================


@pytest.fixture
def store(db: Database) -> StreakStore:
    """Create a streak store whose new records use UTC and threshold 1."""
    return StreakStore(db, default_timezone="UTC", default_threshold=1)


@pytest.fixture
def manager(db: Database, store: StreakStore) -> StreakManager:
    """Create a StreakManager with test database."""
    return StreakManager(db, store=store)


@pytest.fixture
def add_pages(db: Database) -> Callable[..., ProgressEntry]:
    """Factory that records pages read on a local day.

    Usage: ``add_pages(date(2025, 1, 1), 20)`` records 20 pages at noon UTC.
    """

    def _add(
        day: date,
        pages: int,
        at: time = time(12, 0),
        tz: str = "UTC",
        user_key: Optional[str] = None,
        book_id: str = "book-1",
    ) -> ProgressEntry:
        timestamp = datetime.combine(day, at, tzinfo=ZoneInfo(tz))
        return db.add_progress_entry(
            user_key,
            ProgressEntryCreate(book_id=book_id, pages_read=pages, progress_timestamp=timestamp),
        )

    return _add
