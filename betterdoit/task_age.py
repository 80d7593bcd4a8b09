"""
How long a task has been sitting in the active list.
"""
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Optional

FRESH_MAX_DAYS = 7
AGING_MAX_DAYS = 15


@dataclass(frozen=True)
class TaskAge:
    days_old: int
    category: str  # 'fresh' | 'aging' | 'stale'


def get_task_age(added_to_active_at: Optional[datetime], now: Optional[datetime] = None) -> TaskAge:
    """Whole days since activation, bucketed into fresh / aging / stale."""
    if added_to_active_at is None:
        return TaskAge(days_old=0, category="fresh")
    now = now or datetime.now(UTC)
    days_old = max((now - added_to_active_at).days, 0)
    if days_old <= FRESH_MAX_DAYS:
        category = "fresh"
    elif days_old <= AGING_MAX_DAYS:
        category = "aging"
    else:
        category = "stale"
    return TaskAge(days_old=days_old, category=category)
