"""
Notification preference matching.

A trigger invokes the matcher at least once a minute. Users whose saved
reminder time equals the current local "HH:MM" (and, for weekly reminders,
whose day equals today's weekday) are due.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from betterdoit.models import NotificationSetting, WEEKDAYS
from betterdoit.storage.notification_repository import NotificationSettingRepository

logger = logging.getLogger(__name__)


def local_time_and_weekday(now: datetime, timezone: Optional[str] = None) -> Tuple[str, str]:
    """
    Wall-clock "HH:MM" and lowercase weekday name for ``now``.

    An aware ``now`` is converted to ``timezone`` (the process local zone when
    None); a naive ``now`` is taken as already local.
    """
    if now.tzinfo is not None:
        now = now.astimezone(ZoneInfo(timezone)) if timezone else now.astimezone()
    return now.strftime("%H:%M"), WEEKDAYS[now.weekday()]


class ReminderMatcher:
    """Finds the users whose reminder is due at a given minute."""

    def __init__(self, repository: NotificationSettingRepository, timezone: Optional[str] = None):
        self.repository = repository
        self.timezone = timezone

    async def find_due(self, now: Optional[datetime] = None) -> List[NotificationSetting]:
        """
        Settings due at ``now``.

        "every-other-day" reminders fire every day at their time; "weekly"
        reminders fire on their day at their time. Disabled settings and
        settings without a phone number never match. Storage failures
        propagate to the caller.
        """
        if now is None:
            now = datetime.now(ZoneInfo(self.timezone)) if self.timezone else datetime.now().astimezone()
        current_time, current_weekday = local_time_and_weekday(now, self.timezone)
        due = await self.repository.list_due(current_time, current_weekday)
        logger.info(f"{len(due)} reminder(s) due at {current_weekday} {current_time}")
        return due
