"""Reading streaks module."""

from .aggregator import ProgressAggregator
from .boundary import DayBoundary, to_local_date
from .calculator import StreakResult, StreakRun, advance, calculate
from .manager import StreakManager
from .models import Streak, StreakThreshold
from .schemas import (
    ActivityDay,
    DailyAggregate,
    StreakRecord,
    StreakStatus,
    StreakSummary,
)
from .store import KeyedLock, StreakStore
from .threshold import ThresholdPolicy, ThresholdSchedule, validate_threshold

__all__ = [
    "ProgressAggregator",
    "DayBoundary",
    "to_local_date",
    "StreakResult",
    "StreakRun",
    "advance",
    "calculate",
    "StreakManager",
    "Streak",
    "StreakThreshold",
    "ActivityDay",
    "DailyAggregate",
    "StreakRecord",
    "StreakStatus",
    "StreakSummary",
    "KeyedLock",
    "StreakStore",
    "ThresholdPolicy",
    "ThresholdSchedule",
    "validate_threshold",
]
