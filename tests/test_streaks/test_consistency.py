"""Incremental updates and a full rebuild agree on the same history."""

from datetime import date, datetime, time, timedelta, timezone

import pytest

from pagestreak.db.schemas import ProgressEntryCreate
from pagestreak.db.sqlite import Database
from pagestreak.streaks.manager import StreakManager
from pagestreak.streaks.store import StreakStore

START = date(2025, 3, 1)

# Pages read per day, one entry per item; None means no entry that day.
HISTORIES = {
    "unbroken": [12, 10, 15, 11, 30, 10],
    "gaps": [10, None, 10, 10, None, None, 25, 10, 10],
    "below_threshold_days": [10, 4, 10, 10, 9, 10, 0, 10],
    "long_then_short": [20] * 12 + [None] * 3 + [11] * 4,
    "ends_stale": [10, 10, 10, None, None, None],
}


def _fresh_manager() -> StreakManager:
    db = Database(":memory:")
    db.create_tables()
    store = StreakStore(db, default_timezone="UTC")
    store.update_threshold(None, 10, date(2000, 1, 1))
    return StreakManager(db, store=store)


def _record_day(manager: StreakManager, day: date, pages) -> None:
    if pages is None:
        return
    manager.db.add_progress_entry(
        None,
        ProgressEntryCreate(
            book_id="book-1",
            pages_read=pages,
            progress_timestamp=datetime.combine(day, time(9, 30), tzinfo=timezone.utc),
        ),
    )


FIELDS = (
    "current_streak",
    "longest_streak",
    "last_activity_date",
    "streak_start_date",
    "total_days_active",
)


@pytest.mark.parametrize("name", sorted(HISTORIES))
def test_incremental_matches_rebuild(name):
    """Updating once per day ends in the same record as a rebuild on the last day."""
    incremental = _fresh_manager()
    rebuilt = _fresh_manager()

    last_day = START
    for offset, pages in enumerate(HISTORIES[name]):
        last_day = START + timedelta(days=offset)
        for manager in (incremental, rebuilt):
            _record_day(manager, last_day, pages)
        incremental.update_streaks(None, today=last_day)

    a = incremental.get_streak(None)
    b = rebuilt.rebuild_streak(None, as_of_date=last_day)

    assert {f: getattr(a, f) for f in FIELDS} == {f: getattr(b, f) for f in FIELDS}


def test_rebuild_is_idempotent():
    manager = _fresh_manager()
    for offset, pages in enumerate(HISTORIES["gaps"]):
        _record_day(manager, START + timedelta(days=offset), pages)
    as_of = START + timedelta(days=len(HISTORIES["gaps"]) - 1)

    first = manager.rebuild_streak(None, as_of_date=as_of)
    second = manager.rebuild_streak(None, as_of_date=as_of)

    assert first == second
