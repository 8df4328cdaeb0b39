"""Local calendar day boundaries.

Every streak computation buckets absolute timestamps into the user's
*current* local calendar day, including entries recorded while the user
was living under a different offset.
"""

import math
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..exceptions import ValidationError

TimezoneLike = Union[str, tzinfo]


def resolve_timezone(tz: TimezoneLike) -> tzinfo:
    """Turn an IANA name (or tzinfo) into a tzinfo.

    Raises:
        ValidationError: If the name is not a known timezone
    """
    if isinstance(tz, tzinfo):
        return tz
    if not tz:
        raise ValidationError("Invalid timezone: empty name")
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValidationError(f"Invalid timezone: {tz}") from e


def to_local_date(timestamp: datetime, tz: TimezoneLike) -> date:
    """Convert an absolute timestamp into a local calendar date.

    Naive timestamps are taken to be UTC.
    """
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(resolve_timezone(tz)).date()


class DayBoundary:
    """Day boundary strategy bound to one timezone."""

    def __init__(self, tz: TimezoneLike):
        self.tzinfo = resolve_timezone(tz)

    def __repr__(self) -> str:
        return f"<DayBoundary(tz={self.name})>"

    @property
    def name(self) -> str:
        return getattr(self.tzinfo, "key", None) or str(self.tzinfo)

    def to_local_date(self, timestamp: datetime) -> date:
        """Local calendar date of ``timestamp``."""
        return to_local_date(timestamp, self.tzinfo)

    def today(self, now: Optional[datetime] = None) -> date:
        """Today's local date (or the local date of ``now``)."""
        return self.to_local_date(now or datetime.now(timezone.utc))

    def day_window(self, day: date) -> tuple[datetime, datetime]:
        """Half-open UTC window ``[start, end)`` covering one local day.

        Handles days that are 23 or 25 hours long around DST transitions.
        """
        start = datetime.combine(day, time.min, tzinfo=self.tzinfo)
        end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=self.tzinfo)
        return start.astimezone(timezone.utc), end.astimezone(timezone.utc)

    def hours_remaining(self, now: Optional[datetime] = None) -> int:
        """Whole hours left until local midnight, between 0 and 24."""
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        _, end = self.day_window(self.to_local_date(now))
        seconds = (end - now.astimezone(timezone.utc)).total_seconds()
        return max(0, min(24, math.ceil(seconds / 3600)))
