"""Configuration management for pagestreak.

Loads configuration from environment variables and provides defaults.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

DEFAULT_TIMEZONE = "America/New_York"


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path

    # Streak defaults for newly created records
    default_timezone: str
    default_threshold: int

    # Logging
    log_level: str

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get(
            "PAGESTREAK_DB_PATH",
            str(Path.home() / ".pagestreak" / "pagestreak.db"),
        )
        db_path = Path(db_path_str).expanduser()

        return cls(
            db_path=db_path,
            default_timezone=os.environ.get("PAGESTREAK_TIMEZONE", DEFAULT_TIMEZONE),
            default_threshold=int(os.environ.get("PAGESTREAK_DEFAULT_THRESHOLD", "1")),
            log_level=os.environ.get("PAGESTREAK_LOG_LEVEL", "WARNING").upper(),
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        try:
            ZoneInfo(self.default_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            errors.append(f"Invalid timezone: {self.default_timezone}")

        if not 1 <= self.default_threshold <= 9999:
            errors.append("Default threshold must be between 1 and 9999")

        if not isinstance(logging.getLevelName(self.log_level), int):
            errors.append(f"Unknown log level: {self.log_level}")

        # Check database directory is writable
        if str(self.db_path) != ":memory:" and not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        return errors

    def configure_logging(self, verbose: bool = False) -> None:
        """Configure root logging from the configured level."""
        level = logging.DEBUG if verbose else getattr(logging, self.log_level, logging.WARNING)
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
