# fiscal_tracker/core/clock.py
"""
The single place that reads the wall clock.

Engine functions never call ``date.today()`` themselves: the API layer takes
one reading per request and passes it down, so every classification made
while serving that request agrees on what "today" is.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from fiscal_tracker.config.settings import settings


def today() -> date:
    """Current calendar date in the firm's time zone."""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).date()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
