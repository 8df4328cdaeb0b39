"""Database module for local SQLite storage."""

from .models import ProgressLog
from .schemas import DEFAULT_USER_KEY, ProgressEntry, ProgressEntryCreate
from .sqlite import Database, get_db

__all__ = [
    "ProgressLog",
    "DEFAULT_USER_KEY",
    "ProgressEntry",
    "ProgressEntryCreate",
    "Database",
    "get_db",
]
