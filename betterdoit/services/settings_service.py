"""
Notification settings service - validation in front of the settings repository.
"""
import logging
import re
from typing import Optional

from betterdoit.exceptions import ValidationError
from betterdoit.models import Frequency, NotificationSetting, WEEKDAYS
from betterdoit.storage.notification_repository import NotificationSettingRepository

logger = logging.getLogger(__name__)

PHONE_DIGITS = 10
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def normalize_phone_number(phone_number: Optional[str]) -> str:
    """Strip everything but digits."""
    return re.sub(r"\D", "", phone_number or "")


class SettingsService:
    """Reads and saves a user's reminder preferences."""

    def __init__(self, repository: NotificationSettingRepository):
        self.repository = repository

    async def get(self, user_id: str) -> NotificationSetting:
        """The user's settings, or the defaults if they never saved any."""
        setting = await self.repository.get(user_id)
        return setting or NotificationSetting.defaults(user_id)

    async def save(
        self,
        user_id: str,
        *,
        phone_number: Optional[str] = "",
        frequency: str = Frequency.EVERY_OTHER_DAY.value,
        time: str = "09:00",
        day_of_week: Optional[str] = "monday",
        enabled: bool = False,
    ) -> NotificationSetting:
        """
        Validate and overwrite the user's settings.

        Raises:
            ValidationError: If any field is invalid; nothing is written
        """
        digits = normalize_phone_number(phone_number)
        if enabled and not digits:
            raise ValidationError("Phone number is required when notifications are enabled",
                                  field="phoneNumber")
        if enabled and len(digits) != PHONE_DIGITS:
            raise ValidationError(f"Phone number must be {PHONE_DIGITS} digits",
                                  field="phoneNumber", value=phone_number)

        try:
            cadence = Frequency(frequency)
        except ValueError:
            raise ValidationError(
                f"Frequency must be one of {', '.join(f.value for f in Frequency)}",
                field="frequency", value=frequency,
            )

        if not TIME_PATTERN.match(time or ""):
            raise ValidationError("Time must be HH:MM (24-hour)", field="time", value=time)

        day = (day_of_week or "").strip().lower() or None
        if day is not None and day not in WEEKDAYS:
            raise ValidationError("Day of week must be a weekday name", field="dayOfWeek", value=day_of_week)
        if cadence == Frequency.WEEKLY and enabled and day is None:
            raise ValidationError("Day of week is required for weekly reminders", field="dayOfWeek")

        setting = NotificationSetting(
            user_id=user_id,
            phone_number=digits,
            frequency=cadence,
            time=time,
            day_of_week=day,
            enabled=enabled,
        )
        return await self.repository.upsert(setting)
