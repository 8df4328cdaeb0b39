"""Tests for SQLite database operations."""

from datetime import date, datetime, timezone
from uuid import UUID
from zoneinfo import ZoneInfo

import pytest

from pagestreak.db.models import ProgressLog
from pagestreak.db.schemas import DEFAULT_USER_KEY, ProgressEntryCreate
from pagestreak.db.sqlite import Database, get_db, reset_db
from pagestreak.exceptions import StorageError
from pagestreak.streaks.boundary import DayBoundary
from pagestreak.streaks.models import Streak, StreakThreshold


def entry(ts: datetime, pages: int = 10, book_id: str = "book-1") -> ProgressEntryCreate:
    return ProgressEntryCreate(book_id=book_id, pages_read=pages, progress_timestamp=ts)


class TestDatabaseCreation:
    """Tests for database initialization."""

    def test_database_creates_tables(self, db: Database):
        """Test that database creates all required tables."""
        with db.get_session() as session:
            # These queries should not raise
            session.query(ProgressLog).first()
            session.query(Streak).first()
            session.query(StreakThreshold).first()

    def test_database_path_created(self, file_db: Database):
        """Test that database file is created."""
        assert file_db.db_path.exists()

    def test_global_instance(self, file_db: Database):
        """get_db reuses one instance until reset."""
        first = get_db(str(file_db.db_path))

        assert get_db() is first
        reset_db()
        assert get_db(str(file_db.db_path)) is not first


class TestProgressEntries:
    """Tests for progress entry operations."""

    def test_add_entry(self, db: Database):
        created = db.add_progress_entry(
            None, entry(datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc), 25)
        )

        assert str(UUID(created.id)) == created.id
        assert created.book_id == "book-1"
        assert created.pages_read == 25
        assert created.progress_timestamp == datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)

    def test_timestamps_stored_as_utc(self, db: Database):
        """An aware local timestamp comes back as the same instant in UTC."""
        local = datetime(2025, 5, 1, 22, 0, tzinfo=ZoneInfo("America/New_York"))

        created = db.add_progress_entry(None, entry(local))

        assert created.progress_timestamp.tzinfo is not None
        assert created.progress_timestamp == local
        assert created.progress_timestamp.hour == 2

    def test_none_key_is_default_key(self, db: Database):
        db.add_progress_entry(None, entry(datetime(2025, 5, 1, tzinfo=timezone.utc)))

        assert len(db.list_all_entries(DEFAULT_USER_KEY)) == 1
        assert len(db.list_all_entries(None)) == 1

    def test_list_all_entries_ascending(self, db: Database):
        for day in (3, 1, 2):
            db.add_progress_entry(None, entry(datetime(2025, 5, day, tzinfo=timezone.utc), day))

        entries = db.list_all_entries(None)

        assert [e.pages_read for e in entries] == [1, 2, 3]

    def test_list_all_entries_per_user(self, db: Database):
        db.add_progress_entry("alice", entry(datetime(2025, 5, 1, tzinfo=timezone.utc)))
        db.add_progress_entry("bob", entry(datetime(2025, 5, 1, tzinfo=timezone.utc)))
        db.add_progress_entry("bob", entry(datetime(2025, 5, 2, tzinfo=timezone.utc)))

        assert len(db.list_all_entries("alice")) == 1
        assert len(db.list_all_entries("bob")) == 2
        assert db.list_all_entries(None) == []

    def test_list_entries_for_date_uses_local_day(self, db: Database):
        tz = ZoneInfo("America/New_York")
        boundary = DayBoundary("America/New_York")
        db.add_progress_entry(None, entry(datetime(2025, 5, 1, 23, 59, tzinfo=tz), 1))
        db.add_progress_entry(None, entry(datetime(2025, 5, 2, 0, 0, tzinfo=tz), 2))
        db.add_progress_entry(None, entry(datetime(2025, 5, 2, 23, 59, tzinfo=tz), 3))
        db.add_progress_entry(None, entry(datetime(2025, 5, 3, 0, 1, tzinfo=tz), 4))

        entries = db.list_entries_for_date(None, date(2025, 5, 2), boundary)

        assert [e.pages_read for e in entries] == [2, 3]

    def test_earliest_timestamp(self, db: Database):
        assert db.get_earliest_progress_timestamp(None) is None

        db.add_progress_entry(None, entry(datetime(2025, 5, 3, tzinfo=timezone.utc)))
        db.add_progress_entry(None, entry(datetime(2025, 4, 30, 8, 0, tzinfo=timezone.utc)))

        earliest = db.get_earliest_progress_timestamp(None)
        assert earliest == datetime(2025, 4, 30, 8, 0, tzinfo=timezone.utc)

    def test_session_is_shared(self, db: Database):
        """Operations given a session see each other's uncommitted rows."""
        with db.get_session() as s:
            db.add_progress_entry(None, entry(datetime(2025, 5, 1, tzinfo=timezone.utc)), session=s)
            assert len(db.list_all_entries(None, session=s)) == 1


class TestStorageErrors:
    """Tests for error wrapping."""

    def test_missing_tables_raise_storage_error(self):
        database = Database(":memory:")

        with pytest.raises(StorageError):
            database.list_all_entries(None)

    def test_failed_write_is_rolled_back(self, db: Database):
        with pytest.raises(RuntimeError):
            with db.get_session() as s:
                db.add_progress_entry(
                    None, entry(datetime(2025, 5, 1, tzinfo=timezone.utc)), session=s
                )
                raise RuntimeError("boom")

        assert len(db.list_all_entries(None)) == 0
