"""Daily threshold validation and per-day threshold history."""

from bisect import bisect_right
from datetime import date
from numbers import Integral
from typing import Iterable, Optional

from ..exceptions import ValidationError

MIN_THRESHOLD = 1
MAX_THRESHOLD = 9999
DEFAULT_THRESHOLD = 1


class ThresholdPolicy:
    """Validates the daily page-count goal."""

    def __init__(
        self,
        minimum: int = MIN_THRESHOLD,
        maximum: int = MAX_THRESHOLD,
    ):
        self.minimum = minimum
        self.maximum = maximum

    def validate(self, value: object) -> int:
        """Validate a threshold value.

        Args:
            value: Candidate threshold

        Returns:
            The value as an int

        Raises:
            ValidationError: If the value is not an integer or out of range
        """
        # bool is an Integral subclass; a checkbox value is not a page count
        if isinstance(value, bool) or not isinstance(value, Integral):
            raise ValidationError("Daily threshold must be an integer")
        if value < self.minimum or value > self.maximum:
            raise ValidationError(
                f"Daily threshold must be between {self.minimum} and {self.maximum}"
            )
        return int(value)


_default_policy = ThresholdPolicy()


def validate_threshold(value: object) -> int:
    """Validate ``value`` against the default 1-9999 policy."""
    return _default_policy.validate(value)


class ThresholdSchedule:
    """Threshold history for one user.

    ``threshold_for(day)`` answers with the threshold that was in effect on
    that day, so raising the goal today leaves past days as they were.
    Days before the first recorded change use the earliest threshold.
    """

    def __init__(self, changes: Iterable[tuple[date, int]], fallback: int = DEFAULT_THRESHOLD):
        ordered = sorted(changes)
        self._dates = [d for d, _ in ordered]
        self._values = [v for _, v in ordered]
        self.fallback = fallback

    def __len__(self) -> int:
        return len(self._dates)

    def __repr__(self) -> str:
        return f"<ThresholdSchedule(changes={len(self)}, fallback={self.fallback})>"

    @property
    def current(self) -> Optional[int]:
        return self._values[-1] if self._values else None

    def threshold_for(self, day: date) -> int:
        if not self._dates:
            return self.fallback
        index = bisect_right(self._dates, day) - 1
        return self._values[max(index, 0)]

    def __call__(self, day: date) -> int:
        return self.threshold_for(day)
