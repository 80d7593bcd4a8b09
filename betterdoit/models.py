"""
Domain models for tasks and notification settings.
"""
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Timestamps are stored as UTC text in this format on both backends
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_db_timestamp(value: datetime) -> str:
    """Format a datetime as the UTC text stored in timestamp columns."""
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.strftime(TIMESTAMP_FORMAT)


def from_db_timestamp(value: Any) -> Optional[datetime]:
    """Parse a stored timestamp back into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    text = str(value).replace("T", " ").rstrip("Z")
    parsed = datetime.fromisoformat(text)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


class Frequency(str, Enum):
    """Reminder cadence."""
    EVERY_OTHER_DAY = "every-other-day"
    WEEKLY = "weekly"


class Task(BaseModel):
    """A task owned by exactly one user."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str = Field(alias="userId")
    title: str
    is_completed: bool = Field(default=False, alias="isCompleted")
    is_active: bool = Field(default=False, alias="isActive")
    sort_order: int = Field(default=0, alias="sortOrder")
    created_at: datetime = Field(alias="createdAt")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")
    added_to_active_at: Optional[datetime] = Field(default=None, alias="addedToActiveAt")

    @field_validator("created_at", "completed_at", "added_to_active_at", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> Optional[datetime]:
        return from_db_timestamp(v)

    @field_validator("sort_order", mode="before")
    @classmethod
    def parse_sort_order(cls, v: Any) -> int:
        # Rows written by older clients can hold fractional midpoints
        return int(v) if v is not None else 0

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Task":
        """Build a Task from a row keyed by logical column names."""
        return cls.model_validate(row)

    def to_api(self) -> Dict[str, Any]:
        """camelCase representation used by the HTTP API."""
        return self.model_dump(mode="json", by_alias=True)


class NotificationSetting(BaseModel):
    """A user's SMS reminder preferences (one row per user)."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    phone_number: str = Field(default="", alias="phoneNumber")
    frequency: Frequency = Frequency.EVERY_OTHER_DAY
    time: str = "09:00"
    day_of_week: Optional[str] = Field(default="monday", alias="dayOfWeek")
    enabled: bool = False
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @field_validator("updated_at", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> Optional[datetime]:
        return from_db_timestamp(v)

    @field_validator("phone_number", mode="before")
    @classmethod
    def none_phone_is_empty(cls, v: Any) -> str:
        return v or ""

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "NotificationSetting":
        return cls.model_validate(row)

    @classmethod
    def defaults(cls, user_id: str) -> "NotificationSetting":
        """Settings reported for a user who has never saved any."""
        return cls(user_id=user_id)

    def to_api(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json", by_alias=True, exclude={"user_id", "updated_at"})
        return data


class SendResult(BaseModel):
    """Outcome of one call to the message-send capability."""

    success: bool
    provider_message_id: Optional[str] = Field(default=None, alias="providerMessageId")
    error: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class ReminderResult(BaseModel):
    """Per-user entry of a reminder run."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    phone_number: str = Field(alias="phoneNumber")
    task_count: int = Field(alias="taskCount")
    send_result: SendResult = Field(alias="sendResult")


class ReminderRunResult(BaseModel):
    """Summary of one reminder run."""

    sent: int
    results: List[ReminderResult] = Field(default_factory=list)

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
