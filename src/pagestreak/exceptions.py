"""Exceptions raised by the streak engine."""


class StreakError(Exception):
    """Base exception for streak engine errors."""

    pass


class ValidationError(StreakError, ValueError):
    """Raised when a user-supplied value is rejected (e.g. daily threshold)."""

    pass


class StorageError(StreakError):
    """Raised when the progress repository or streak store cannot be reached."""

    pass


class InvariantError(StreakError, AssertionError):
    """Raised on programmer errors such as unsorted or duplicate daily aggregates."""

    pass
