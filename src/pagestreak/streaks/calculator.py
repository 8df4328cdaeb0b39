"""Streak calculation.

Both the full rebuild and the incremental update go through this module:
``calculate`` walks a complete list of daily aggregates, ``advance`` applies
a single new day to a previous result. They share ``qualifies`` and the
gap rule in ``is_alive``, so the two paths agree.

A streak stays alive through the day after its last qualifying day: you
have until the end of today to keep yesterday's streak going.
"""

from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Callable, Optional, Sequence

from ..exceptions import InvariantError
from .schemas import DailyAggregate

ThresholdLookup = Callable[[date], int]


@dataclass(frozen=True)
class StreakRun:
    """A maximal run of qualifying days on consecutive dates."""

    start: date
    length: int

    @property
    def end(self) -> date:
        return self.start + timedelta(days=self.length - 1)

    def __contains__(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class StreakResult:
    """Computed streak values, ready to be written to the store."""

    current_streak: int = 0
    longest_streak: int = 0
    last_activity_date: Optional[date] = None
    streak_start_date: Optional[date] = None
    total_days_active: int = 0
    daily_threshold: int = 1


def qualifies(total_pages_read: int, threshold: int) -> bool:
    """A day qualifies when its total meets or exceeds the threshold."""
    return total_pages_read >= threshold


def days_between(earlier: date, later: date) -> int:
    """Whole calendar days from ``earlier`` to ``later``."""
    return (later - earlier).days


def is_alive(last_qualifying: Optional[date], as_of: date) -> bool:
    """Whether a streak ending on ``last_qualifying`` still counts on ``as_of``."""
    return last_qualifying is not None and days_between(last_qualifying, as_of) <= 1


def find_runs(dates: Sequence[date]) -> list[StreakRun]:
    """Partition ascending dates into maximal runs of consecutive days."""
    runs: list[StreakRun] = []
    for day in dates:
        if runs and days_between(runs[-1].end, day) == 1:
            runs[-1] = StreakRun(runs[-1].start, runs[-1].length + 1)
        else:
            runs.append(StreakRun(day, 1))
    return runs


def _check_order(aggregates: Sequence[DailyAggregate]) -> None:
    for previous, current in zip(aggregates, aggregates[1:]):
        if current.date == previous.date:
            raise InvariantError(f"Duplicate daily aggregate for {current.date}")
        if current.date < previous.date:
            raise InvariantError(
                f"Daily aggregates out of order: {previous.date} before {current.date}"
            )


def qualifying_dates(
    aggregates: Sequence[DailyAggregate],
    threshold: int,
    threshold_for: Optional[ThresholdLookup] = None,
) -> list[date]:
    """Ascending dates whose totals meet the threshold in effect that day."""
    _check_order(aggregates)
    return [
        agg.date
        for agg in aggregates
        if qualifies(agg.total_pages_read, threshold_for(agg.date) if threshold_for else threshold)
    ]


def calculate(
    aggregates: Sequence[DailyAggregate],
    threshold: int,
    as_of_date: date,
    threshold_for: Optional[ThresholdLookup] = None,
) -> StreakResult:
    """Derive streak values from the full, ascending list of daily aggregates.

    Args:
        aggregates: Daily totals, ascending, at most one per date
        threshold: Current daily threshold (reported on the result)
        as_of_date: Day the streak is evaluated on, usually today. Later
            aggregates are ignored.
        threshold_for: Optional per-day threshold lookup; when given it
            decides which days qualify instead of ``threshold``

    Raises:
        InvariantError: If aggregates are unsorted or contain duplicates
    """
    _check_order(aggregates)
    visible = [agg for agg in aggregates if agg.date <= as_of_date]
    dates = qualifying_dates(visible, threshold, threshold_for)
    if not dates:
        return StreakResult(daily_threshold=threshold)

    runs = find_runs(dates)
    last_run = runs[-1]
    last_qualifying = last_run.end

    if is_alive(last_qualifying, as_of_date):
        current, start = last_run.length, last_run.start
    else:
        current, start = 0, None

    return StreakResult(
        current_streak=current,
        longest_streak=max(run.length for run in runs),
        last_activity_date=last_qualifying,
        streak_start_date=start,
        total_days_active=len(dates),
        daily_threshold=threshold,
    )


def advance(previous: StreakResult, day: date, day_qualifies: bool) -> StreakResult:
    """Apply one new day of activity to a previously computed result.

    Re-evaluating the last activity day is a no-op. A non-qualifying day
    never zeroes a streak that is still alive; it only clears one that went
    stale (more than a day since the last qualifying day).

    Raises:
        InvariantError: If ``day`` is before the last activity date
    """
    last = previous.last_activity_date
    if last is not None:
        if day == last:
            return previous
        if day < last:
            raise InvariantError(f"Cannot advance streak backwards from {last} to {day}")

    if day_qualifies:
        if last is not None and days_between(last, day) == 1 and previous.current_streak > 0:
            current = previous.current_streak + 1
            start = previous.streak_start_date or day - timedelta(days=current - 1)
        else:
            current, start = 1, day
        return replace(
            previous,
            current_streak=current,
            longest_streak=max(previous.longest_streak, current),
            last_activity_date=day,
            streak_start_date=start,
            total_days_active=previous.total_days_active + 1,
        )

    if previous.current_streak > 0 and not is_alive(last, day):
        return replace(previous, current_streak=0, streak_start_date=None)
    return previous
