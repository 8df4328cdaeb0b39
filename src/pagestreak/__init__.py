"""pagestreak - daily reading streaks from page-progress logs."""

__version__ = "0.1.0"
