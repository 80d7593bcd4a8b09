"""
Tests for ReminderMatcher.
"""
from datetime import datetime, UTC
from unittest.mock import AsyncMock, MagicMock

import pytest

from betterdoit.exceptions import StorageError
from betterdoit.models import Frequency, NotificationSetting
from betterdoit.services.reminder_matcher import ReminderMatcher, local_time_and_weekday

from conftest import run

# Monday 2024-01-01 09:00 UTC
MONDAY_9AM = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)


def save(repo, user_id, **kwargs):
    values = {"phone_number": "5550000000", "enabled": True, "time": "09:00"}
    values.update(kwargs)
    run(repo.upsert(NotificationSetting(user_id=user_id, **values)))


@pytest.fixture
def matcher(notification_repo):
    return ReminderMatcher(notification_repo, timezone="UTC")


def due_users(matcher, now=MONDAY_9AM):
    return [s.user_id for s in run(matcher.find_due(now))]


class TestFindDue:
    """Tests for find_due."""

    def test_every_other_day_matches_on_time_any_day(self, matcher, notification_repo):
        save(notification_repo, "daily", frequency=Frequency.EVERY_OTHER_DAY)
        assert due_users(matcher) == ["daily"]
        assert due_users(matcher, datetime(2024, 1, 2, 9, 0, tzinfo=UTC)) == ["daily"]

    def test_time_must_match_exactly(self, matcher, notification_repo):
        save(notification_repo, "daily")
        assert due_users(matcher, datetime(2024, 1, 1, 9, 1, tzinfo=UTC)) == []

    def test_weekly_matches_only_on_its_day(self, matcher, notification_repo):
        save(notification_repo, "monday", frequency=Frequency.WEEKLY, day_of_week="monday")
        save(notification_repo, "tuesday", frequency=Frequency.WEEKLY, day_of_week="tuesday")
        assert due_users(matcher) == ["monday"]

    def test_disabled_and_phoneless_settings_never_match(self, matcher, notification_repo):
        save(notification_repo, "disabled", enabled=False)
        save(notification_repo, "no-phone", phone_number="")
        save(notification_repo, "ok")
        assert due_users(matcher) == ["ok"]

    def test_timezone_conversion(self, notification_repo):
        save(notification_repo, "east", time="09:00")
        matcher = ReminderMatcher(notification_repo, timezone="America/New_York")
        # 14:00 UTC is 09:00 EST
        assert due_users(matcher, datetime(2024, 1, 1, 14, 0, tzinfo=UTC)) == ["east"]
        assert due_users(matcher, MONDAY_9AM) == []

    def test_storage_failure_propagates(self):
        repo = MagicMock()
        repo.list_due = AsyncMock(side_effect=StorageError("database is locked", operation="SELECT"))
        with pytest.raises(StorageError):
            run(ReminderMatcher(repo, timezone="UTC").find_due(MONDAY_9AM))


def test_local_time_and_weekday():
    assert local_time_and_weekday(MONDAY_9AM, "UTC") == ("09:00", "monday")
    assert local_time_and_weekday(datetime(2024, 1, 7, 23, 59), None) == ("23:59", "sunday")
