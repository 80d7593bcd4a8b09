"""
Request bodies accepted by the HTTP API.

Field names are camelCase on the wire, snake_case in Python.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TaskCreate(_CamelModel):
    title: str
    is_active: bool = Field(default=False, alias="isActive")


class TaskUpdate(_CamelModel):
    """Partial update; only fields that are present are applied."""
    title: Optional[str] = None
    is_completed: Optional[bool] = Field(default=None, alias="isCompleted")
    toggle: bool = False
    is_active: Optional[bool] = Field(default=None, alias="isActive")
    sort_order: Optional[int] = Field(default=None, alias="sortOrder")


class TaskReorder(_CamelModel):
    sort_order: int = Field(alias="sortOrder")


class TaskMove(_CamelModel):
    is_active: bool = Field(alias="isActive")
    index: int = Field(ge=0)


class NotificationSettingUpdate(_CamelModel):
    phone_number: Optional[str] = Field(default="", alias="phoneNumber")
    frequency: str = "every-other-day"
    time: str = "09:00"
    day_of_week: Optional[str] = Field(default="monday", alias="dayOfWeek")
    enabled: bool = False
