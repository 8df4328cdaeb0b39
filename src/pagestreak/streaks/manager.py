"""Streak manager: rebuild, incremental update and streak settings."""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ..config import get_config
from ..db.sqlite import Database, get_db
from . import calculator
from .aggregator import ProgressAggregator
from .boundary import DayBoundary, resolve_timezone
from .schemas import ActivityDay, StreakRecord, StreakStatus, StreakSummary
from .store import KeyedLock, StreakStore
from .threshold import validate_threshold

logger = logging.getLogger(__name__)


def _to_result(record: StreakRecord) -> calculator.StreakResult:
    return calculator.StreakResult(
        current_streak=record.current_streak,
        longest_streak=record.longest_streak,
        last_activity_date=record.last_activity_date,
        streak_start_date=record.streak_start_date,
        total_days_active=record.total_days_active,
        daily_threshold=record.daily_threshold,
    )


def _merge(record: StreakRecord, result: calculator.StreakResult, **overrides) -> StreakRecord:
    return record.model_copy(
        update={
            "current_streak": result.current_streak,
            "longest_streak": result.longest_streak,
            "last_activity_date": result.last_activity_date,
            "streak_start_date": result.streak_start_date,
            "total_days_active": result.total_days_active,
            "daily_threshold": result.daily_threshold,
            **overrides,
        }
    )


class StreakManager:
    """Maintains the persisted streak record for each user key.

    ``rebuild_streak`` recomputes from the full progress history;
    ``update_streaks`` looks only at today's entries and the stored record.
    Both run under a per-user lock.
    """

    def __init__(
        self,
        db: Optional[Database] = None,
        store: Optional[StreakStore] = None,
        locks: Optional[KeyedLock] = None,
    ):
        """Initialize streak manager.

        Args:
            db: Database instance (progress repository)
            store: Streak store; built on ``db`` with configured defaults if None
            locks: Per-user lock registry, shareable between managers
        """
        self.db = db or get_db()
        if store is None:
            config = get_config()
            store = StreakStore(
                self.db,
                default_timezone=config.default_timezone,
                default_threshold=config.default_threshold,
            )
        self.store = store
        self.locks = locks or KeyedLock()

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def get_streak(self, user_key: Optional[str] = None) -> StreakRecord:
        """Get the streak record, creating a zeroed one on first access.

        Never recomputes anything; a stale streak is reported as stored.
        """
        return self.store.get_or_create(user_key)

    def boundary_for(self, record: StreakRecord) -> DayBoundary:
        """Day boundary for a record's timezone."""
        return DayBoundary(record.user_timezone)

    def get_streak_summary(
        self, user_key: Optional[str] = None, now: Optional[datetime] = None
    ) -> StreakSummary:
        """Get the streak record with today's status and hours remaining."""
        now = now or datetime.now(timezone.utc)
        record = self.get_streak(user_key)
        boundary = self.boundary_for(record)
        today = boundary.today(now)

        aggregate = ProgressAggregator(boundary).aggregate_day(
            self.db.list_entries_for_date(user_key, today, boundary), today
        )
        pages_today = aggregate.total_pages_read if aggregate else 0

        if record.last_activity_date == today:
            status = StreakStatus.ACTIVE
        elif record.current_streak > 0 and calculator.is_alive(record.last_activity_date, today):
            status = StreakStatus.AT_RISK
        else:
            status = StreakStatus.ENDED

        return StreakSummary(
            record=record,
            status=status,
            hours_remaining_today=boundary.hours_remaining(now),
            pages_read_today=pages_today,
        )

    # -------------------------------------------------------------------------
    # Rebuild (full history)
    # -------------------------------------------------------------------------

    def rebuild_streak(
        self,
        user_key: Optional[str] = None,
        as_of_date: Optional[date] = None,
        enable_tracking: bool = False,
    ) -> StreakRecord:
        """Recompute the streak from the user's entire progress history.

        Each day is judged against the threshold that was in effect on it.
        The stored record is overwritten in one transaction.

        Args:
            user_key: User key (None for single-user mode)
            as_of_date: Day to evaluate the streak on (default: today, local)
            enable_tracking: Also switch streak tracking on

        Returns:
            The rebuilt StreakRecord
        """
        with self.locks.hold(user_key):
            with self.db.get_session() as session:
                return self._rebuild(session, user_key, as_of_date, enable_tracking)

    def _rebuild(
        self,
        session: Session,
        user_key: Optional[str],
        as_of_date: Optional[date],
        enable_tracking: bool,
    ) -> StreakRecord:
        record = self.store.get_or_create(user_key, session=session)
        boundary = self.boundary_for(record)
        as_of_date = as_of_date or boundary.today()

        entries = self.db.list_all_entries(user_key, session=session)
        aggregates = ProgressAggregator(boundary).aggregate(entries)
        schedule = self.store.get_threshold_schedule(user_key, session=session)

        result = calculator.calculate(
            aggregates,
            record.daily_threshold,
            as_of_date,
            threshold_for=schedule,
        )
        logger.info(
            "Rebuilt streak for %s from %d entries over %d days: current=%d longest=%d active=%d",
            record.user_key,
            len(entries),
            len(aggregates),
            result.current_streak,
            result.longest_streak,
            result.total_days_active,
        )

        updated = _merge(
            record,
            result,
            streak_enabled=record.streak_enabled or enable_tracking,
        )
        return self.store.upsert(user_key, updated, session=session)

    # -------------------------------------------------------------------------
    # Incremental update (today only)
    # -------------------------------------------------------------------------

    def update_streaks(
        self, user_key: Optional[str] = None, today: Optional[date] = None
    ) -> StreakRecord:
        """Fold today's activity into the stored streak record.

        Call once after recording a progress entry. Only today's entries are
        read; earlier history is taken from the stored record.

        Args:
            user_key: User key (None for single-user mode)
            today: The local day to evaluate (default: today, local)

        Returns:
            The updated StreakRecord
        """
        with self.locks.hold(user_key):
            with self.db.get_session() as session:
                record = self.store.get_or_create(user_key, session=session)
                boundary = self.boundary_for(record)
                today = today or boundary.today()

                if record.last_activity_date and today < record.last_activity_date:
                    logger.warning(
                        "Last activity %s for %s is after %s; rebuilding from history",
                        record.last_activity_date,
                        record.user_key,
                        today,
                    )
                    return self._rebuild(session, user_key, today, enable_tracking=False)

                if record.last_activity_date == today:
                    logger.debug("Streak for %s already counts %s", record.user_key, today)
                    return record

                entries = self.db.list_entries_for_date(user_key, today, boundary, session=session)
                aggregate = ProgressAggregator(boundary).aggregate_day(entries, today)
                pages = aggregate.total_pages_read if aggregate else 0
                day_qualifies = calculator.qualifies(pages, record.daily_threshold)

                result = calculator.advance(_to_result(record), today, day_qualifies)
                if result == _to_result(record):
                    logger.debug(
                        "No streak change for %s on %s (%d/%d pages)",
                        record.user_key,
                        today,
                        pages,
                        record.daily_threshold,
                    )
                    return record

                logger.info(
                    "Streak for %s on %s: current %d -> %d",
                    record.user_key,
                    today,
                    record.current_streak,
                    result.current_streak,
                )
                return self.store.upsert(user_key, _merge(record, result), session=session)

    def check_and_reset_streak_if_needed(
        self, user_key: Optional[str] = None, today: Optional[date] = None
    ) -> bool:
        """Zero a current streak that went stale.

        Returns:
            True if the streak was reset
        """
        with self.locks.hold(user_key):
            with self.db.get_session() as session:
                record = self.store.get_or_create(user_key, session=session)
                today = today or self.boundary_for(record).today()

                if record.current_streak == 0 or calculator.is_alive(
                    record.last_activity_date, today
                ):
                    return False

                logger.info(
                    "Resetting stale streak for %s (last activity %s)",
                    record.user_key,
                    record.last_activity_date,
                )
                self.store.upsert(
                    user_key,
                    record.model_copy(update={"current_streak": 0, "streak_start_date": None}),
                    session=session,
                )
                return True

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    def set_threshold(self, user_key: Optional[str], value: object) -> StreakRecord:
        """Set the daily threshold, effective from today.

        Raises:
            ValidationError: If the value is not an integer in 1-9999
        """
        threshold = validate_threshold(value)
        with self.locks.hold(user_key):
            with self.db.get_session() as session:
                record = self.store.get_or_create(user_key, session=session)
                effective = self.boundary_for(record).today()
                return self.store.update_threshold(
                    user_key, threshold, effective, session=session
                )

    def set_streak_enabled(
        self,
        user_key: Optional[str],
        enabled: bool,
        initial_threshold: Optional[int] = None,
        today: Optional[date] = None,
    ) -> StreakRecord:
        """Turn streak tracking on or off.

        When enabling, ``initial_threshold`` (if given) is validated and set.
        If no threshold was set before, it applies to all past days too.
        Switching tracking on rebuilds the streak from the full history.
        When disabling, ``initial_threshold`` is ignored; all streak data is kept.

        Args:
            user_key: User key (None for single-user mode)
            enabled: Whether tracking should be on
            initial_threshold: Daily threshold to start with
            today: The local day tracking starts (default: today, local)
        """
        if enabled and initial_threshold is not None:
            validate_threshold(initial_threshold)

        with self.locks.hold(user_key):
            with self.db.get_session() as session:
                record = self.store.get_or_create(user_key, session=session)
                today = today or self.boundary_for(record).today()
                if enabled and initial_threshold is not None:
                    record = self.store.update_threshold(
                        user_key,
                        initial_threshold,
                        today,
                        session=session,
                        backfill=True,
                    )
                if enabled and not record.streak_enabled:
                    logger.info("Streak tracking enabled for %s", record.user_key)
                    return self._rebuild(session, user_key, today, enable_tracking=True)
                return self.store.upsert(
                    user_key, record.model_copy(update={"streak_enabled": enabled}), session=session
                )

    def set_timezone(self, user_key: Optional[str], tz: str) -> StreakRecord:
        """Set the user's timezone (IANA name).

        Day boundaries for all history follow the new zone from now on;
        run ``rebuild_streak`` to re-bucket past entries.

        Raises:
            ValidationError: If the timezone is unknown
        """
        resolve_timezone(tz)
        with self.locks.hold(user_key):
            with self.db.get_session() as session:
                record = self.store.get_or_create(user_key, session=session)
                return self.store.upsert(
                    user_key, record.model_copy(update={"user_timezone": tz}), session=session
                )

    # -------------------------------------------------------------------------
    # Calendar
    # -------------------------------------------------------------------------

    def get_activity_calendar(
        self,
        user_key: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[ActivityDay]:
        """Pages read per local day, zero-filled.

        The range starts no earlier than the first recorded entry and ends
        today by default.

        Args:
            user_key: User key
            start: First day (default: 365 days before ``end``)
            end: Last day (default: today, local)
        """
        record = self.get_streak(user_key)
        boundary = self.boundary_for(record)
        end = end or boundary.today()
        start = start or end - timedelta(days=365)

        earliest = self.db.get_earliest_progress_timestamp(user_key)
        if earliest is None:
            return []
        start = max(start, boundary.to_local_date(earliest))
        if start > end:
            return []

        schedule = self.store.get_threshold_schedule(user_key)
        totals = {
            agg.date: agg.total_pages_read
            for agg in ProgressAggregator(boundary).aggregate(self.db.list_all_entries(user_key))
        }

        days = []
        day = start
        while day <= end:
            pages = totals.get(day, 0)
            days.append(
                ActivityDay(
                    date=day,
                    pages_read=pages,
                    threshold_met=calculator.qualifies(pages, schedule.threshold_for(day)),
                )
            )
            day += timedelta(days=1)
        return days
