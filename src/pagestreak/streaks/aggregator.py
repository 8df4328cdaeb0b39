"""Groups progress entries into per-day page totals."""

from collections import defaultdict
from datetime import date
from typing import Iterable, Optional

from ..db.schemas import ProgressEntry
from .boundary import DayBoundary
from .schemas import DailyAggregate


class ProgressAggregator:
    """Aggregates progress entries by the user's local calendar day."""

    def __init__(self, boundary: DayBoundary):
        """Initialize aggregator.

        Args:
            boundary: Day boundary used to bucket timestamps
        """
        self.boundary = boundary

    def aggregate(self, entries: Iterable[ProgressEntry]) -> list[DailyAggregate]:
        """Sum pages read per local day.

        Days without entries produce no aggregate at all.

        Returns:
            DailyAggregate list sorted ascending by date
        """
        totals: dict[date, int] = defaultdict(int)
        for entry in entries:
            totals[self.boundary.to_local_date(entry.progress_timestamp)] += entry.pages_read

        return [
            DailyAggregate(date=day, total_pages_read=pages)
            for day, pages in sorted(totals.items())
        ]

    def aggregate_day(
        self, entries: Iterable[ProgressEntry], day: date
    ) -> Optional[DailyAggregate]:
        """Aggregate for one day, or None if no entry falls on it."""
        for aggregate in self.aggregate(entries):
            if aggregate.date == day:
                return aggregate
        return None
