"""
Week boundary helpers tied to Wednesday 6:00 PM Eastern Time (America/New_York).

Boundaries are computed in Eastern time and returned as aware UTC datetimes,
which is how completion stamps are stored.
"""
from datetime import datetime, timedelta, UTC
from typing import Optional
from zoneinfo import ZoneInfo

NEW_YORK_TZ = ZoneInfo("America/New_York")
WEEK_START_WEEKDAY = 2  # Monday=0, so Wednesday
WEEK_START_HOUR = 18


def current_week_start(now: Optional[datetime] = None) -> datetime:
    """UTC instant of the most recent Wednesday 18:00 ET at or before ``now``."""
    now = now or datetime.now(UTC)
    local = now.astimezone(NEW_YORK_TZ)
    days_since = (local.weekday() - WEEK_START_WEEKDAY) % 7
    start_date = local.date() - timedelta(days=days_since)
    start = datetime(start_date.year, start_date.month, start_date.day, WEEK_START_HOUR, tzinfo=NEW_YORK_TZ)
    if start > local:
        # Wednesday before 18:00 still belongs to last week
        previous = start_date - timedelta(days=7)
        start = datetime(previous.year, previous.month, previous.day, WEEK_START_HOUR, tzinfo=NEW_YORK_TZ)
    return start.astimezone(UTC)


def next_week_start(now: Optional[datetime] = None) -> datetime:
    start_local = current_week_start(now).astimezone(NEW_YORK_TZ)
    following = start_local.date() + timedelta(days=7)
    return datetime(following.year, following.month, following.day, WEEK_START_HOUR,
                    tzinfo=NEW_YORK_TZ).astimezone(UTC)


def previous_week_start(now: Optional[datetime] = None) -> datetime:
    start_local = current_week_start(now).astimezone(NEW_YORK_TZ)
    preceding = start_local.date() - timedelta(days=7)
    return datetime(preceding.year, preceding.month, preceding.day, WEEK_START_HOUR,
                    tzinfo=NEW_YORK_TZ).astimezone(UTC)
