"""
Repository for notification settings.
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from betterdoit.db_adapter import BaseDatabaseAdapter
from betterdoit.models import Frequency, NotificationSetting, to_db_timestamp, utc_now

logger = logging.getLogger(__name__)


class NotificationSettingRepository:
    """Repository for the one-row-per-user notification_setting table."""

    def __init__(self, adapter: BaseDatabaseAdapter, now: Callable[[], datetime] = utc_now):
        self.adapter = adapter
        self._now = now

    @property
    def c(self):
        return self.adapter.columns.notification_setting

    def _to_setting(self, row) -> NotificationSetting:
        return NotificationSetting.from_row(self.c.from_row(row))

    async def get(self, user_id: str) -> Optional[NotificationSetting]:
        """Get a user's settings, or None if they never saved any."""
        row = await self.adapter.prepare(
            f"SELECT {self.c.select_list()} FROM notification_setting WHERE {self.c.userId} = ?"
        ).get((user_id,))
        return self._to_setting(row) if row else None

    async def upsert(self, setting: NotificationSetting) -> NotificationSetting:
        """
        Replace the user's settings row wholesale.

        Args:
            setting: Validated settings; every column is overwritten

        Returns:
            The stored settings
        """
        c = self.c
        await self.adapter.prepare(
            f"INSERT INTO notification_setting ({c.userId}, {c.phoneNumber}, {c.frequency}, {c.time}, "
            f"{c.dayOfWeek}, {c.enabled}, {c.updatedAt}) VALUES (?, ?, ?, ?, ?, ?, ?) "
            f"ON CONFLICT ({c.userId}) DO UPDATE SET "
            f"{c.phoneNumber} = excluded.{c.phoneNumber}, "
            f"{c.frequency} = excluded.{c.frequency}, "
            f"{c.time} = excluded.{c.time}, "
            f"{c.dayOfWeek} = excluded.{c.dayOfWeek}, "
            f"{c.enabled} = excluded.{c.enabled}, "
            f"{c.updatedAt} = excluded.{c.updatedAt}"
        ).run((
            setting.user_id,
            setting.phone_number or None,
            setting.frequency.value,
            setting.time,
            setting.day_of_week,
            int(setting.enabled),
            to_db_timestamp(self._now()),
        ))
        logger.info(f"Saved notification settings for user {setting.user_id} (enabled={setting.enabled})")
        return await self.get(setting.user_id)

    async def list_due(self, current_time: str, current_weekday: str) -> List[NotificationSetting]:
        """
        Enabled settings with a phone number whose cadence matches the given local time.

        Args:
            current_time: Local wall-clock time as "HH:MM"
            current_weekday: Lowercase full weekday name

        Returns:
            Matching settings ordered by user ID
        """
        c = self.c
        rows = await self.adapter.prepare(
            f"SELECT {c.select_list()} FROM notification_setting "
            f"WHERE {c.enabled} = 1 "
            f"AND {c.phoneNumber} IS NOT NULL AND {c.phoneNumber} <> '' "
            f"AND ("
            f"({c.frequency} = ? AND {c.time} = ?) "
            f"OR ({c.frequency} = ? AND {c.time} = ? AND {c.dayOfWeek} = ?)"
            f") ORDER BY {c.userId} ASC"
        ).all((
            Frequency.EVERY_OTHER_DAY.value, current_time,
            Frequency.WEEKLY.value, current_time, current_weekday,
        ))
        return [self._to_setting(row) for row in rows]
