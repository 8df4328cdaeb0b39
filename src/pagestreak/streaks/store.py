"""Streak persistence: one StreakRecord per user key."""

import threading
from contextlib import contextmanager
from datetime import date
from typing import Generator, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.schemas import resolve_user_key
from ..db.sqlite import Database
from .models import Streak, StreakThreshold
from .schemas import StreakRecord
from .threshold import DEFAULT_THRESHOLD, ThresholdSchedule, validate_threshold


class KeyedLock:
    """One re-entrant lock per user key.

    Serializes read-modify-write cycles on a user's record; different keys
    never block each other.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def _lock_for(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, user_key: Optional[str]) -> Generator[None, None, None]:
        """Hold the lock for ``user_key`` for the duration of the block."""
        lock = self._lock_for(resolve_user_key(user_key))
        with lock:
            yield


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


class StreakStore:
    """SQLAlchemy-backed store for streak records and threshold history."""

    def __init__(
        self,
        db: Database,
        default_timezone: str,
        default_threshold: int = DEFAULT_THRESHOLD,
    ):
        """Initialize streak store.

        Args:
            db: Database instance
            default_timezone: Timezone given to lazily created records
            default_threshold: Threshold given to lazily created records
        """
        self.db = db
        self.default_timezone = default_timezone
        self.default_threshold = validate_threshold(default_threshold)

    # -------------------------------------------------------------------------
    # Row helpers
    # -------------------------------------------------------------------------

    def _get_row(self, s: Session, user_key: Optional[str]) -> Optional[Streak]:
        stmt = select(Streak).where(Streak.user_key == resolve_user_key(user_key))
        return s.execute(stmt).scalar_one_or_none()

    def _get_or_create_row(self, s: Session, user_key: Optional[str]) -> Streak:
        row = self._get_row(s, user_key)
        if row is None:
            row = Streak(
                user_key=resolve_user_key(user_key),
                current_streak=0,
                longest_streak=0,
                total_days_active=0,
                daily_threshold=self.default_threshold,
                streak_enabled=False,
                user_timezone=self.default_timezone,
            )
            s.add(row)
            s.flush()
        return row

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def get(
        self, user_key: Optional[str], session: Optional[Session] = None
    ) -> Optional[StreakRecord]:
        """Get the stored record for a user, or None."""

        def _get(s: Session) -> Optional[StreakRecord]:
            row = self._get_row(s, user_key)
            return StreakRecord.model_validate(row) if row else None

        if session:
            return _get(session)
        else:
            with self.db.get_session() as s:
                return _get(s)

    def get_or_create(
        self, user_key: Optional[str], session: Optional[Session] = None
    ) -> StreakRecord:
        """Get the record for a user, creating a zeroed one if missing."""

        def _get(s: Session) -> StreakRecord:
            return StreakRecord.model_validate(self._get_or_create_row(s, user_key))

        if session:
            return _get(session)
        else:
            with self.db.get_session() as s:
                return _get(s)

    def upsert(
        self, user_key: Optional[str], record: StreakRecord, session: Optional[Session] = None
    ) -> StreakRecord:
        """Overwrite (or create) the record for a user."""

        def _upsert(s: Session) -> StreakRecord:
            row = self._get_or_create_row(s, user_key)
            row.current_streak = record.current_streak
            row.longest_streak = record.longest_streak
            row.last_activity_date = _iso(record.last_activity_date)
            row.streak_start_date = _iso(record.streak_start_date)
            row.total_days_active = record.total_days_active
            row.daily_threshold = validate_threshold(record.daily_threshold)
            row.streak_enabled = record.streak_enabled
            row.user_timezone = record.user_timezone
            s.flush()
            return StreakRecord.model_validate(row)

        if session:
            return _upsert(session)
        else:
            with self.db.get_session() as s:
                return _upsert(s)

    # -------------------------------------------------------------------------
    # Threshold history
    # -------------------------------------------------------------------------

    def update_threshold(
        self,
        user_key: Optional[str],
        value: object,
        effective_date: date,
        session: Optional[Session] = None,
        backfill: bool = False,
    ) -> StreakRecord:
        """Set the daily threshold from ``effective_date`` onwards.

        The first change also records the previous threshold as the one in
        effect for all earlier days. With ``backfill`` and no recorded
        history, the new threshold applies to all earlier days instead.

        Raises:
            ValidationError: If the value is not an integer in 1-9999
        """
        threshold = validate_threshold(value)

        def _update(s: Session) -> StreakRecord:
            key = resolve_user_key(user_key)
            row = self._get_or_create_row(s, user_key)

            history = s.execute(
                select(StreakThreshold).where(StreakThreshold.user_key == key)
            ).scalars().all()
            if not history:
                s.add(
                    StreakThreshold(
                        user_key=key,
                        effective_date=date.min.isoformat(),
                        threshold=threshold if backfill else row.daily_threshold,
                    )
                )
                if backfill:
                    row.daily_threshold = threshold
                    s.flush()
                    return StreakRecord.model_validate(row)

            existing = next(
                (h for h in history if h.effective_date == effective_date.isoformat()), None
            )
            if existing:
                existing.threshold = threshold
            else:
                s.add(
                    StreakThreshold(
                        user_key=key,
                        effective_date=effective_date.isoformat(),
                        threshold=threshold,
                    )
                )

            row.daily_threshold = threshold
            s.flush()
            return StreakRecord.model_validate(row)

        if session:
            return _update(session)
        else:
            with self.db.get_session() as s:
                return _update(s)

    def get_threshold_schedule(
        self, user_key: Optional[str], session: Optional[Session] = None
    ) -> ThresholdSchedule:
        """Get the threshold history for a user."""

        def _get(s: Session) -> ThresholdSchedule:
            row = self._get_row(s, user_key)
            fallback = row.daily_threshold if row else self.default_threshold
            stmt = select(StreakThreshold).where(
                StreakThreshold.user_key == resolve_user_key(user_key)
            )
            changes = [
                (date.fromisoformat(h.effective_date), h.threshold)
                for h in s.execute(stmt).scalars()
            ]
            return ThresholdSchedule(changes, fallback=fallback)

        if session:
            return _get(session)
        else:
            with self.db.get_session() as s:
                return _get(s)
