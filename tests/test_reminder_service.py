"""
Tests for ReminderDispatcher, end to end against SQLite with fake senders.
"""
import asyncio
from datetime import datetime, UTC
from unittest.mock import AsyncMock, MagicMock

import pytest

from betterdoit.exceptions import DeliveryError, StorageError
from betterdoit.models import Frequency, NotificationSetting, SendResult
from betterdoit.services.reminder_matcher import ReminderMatcher
from betterdoit.services.reminder_service import ReminderDispatcher
from betterdoit.sms import LogMessageSender, MessageSender, NO_TASKS_LINE, format_task_reminder_message

from conftest import run

NOW = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)


def enable(repo, user_id, phone, **kwargs):
    run(repo.upsert(NotificationSetting(user_id=user_id, phone_number=phone, enabled=True, time="09:00", **kwargs)))


def make_dispatcher(notification_repo, task_repo, sender, **kwargs):
    matcher = ReminderMatcher(notification_repo, timezone="UTC")
    return ReminderDispatcher(matcher, task_repo, sender, **kwargs)


class FailingSender(MessageSender):
    """Rejects one destination, delivers to everyone else."""

    def __init__(self, bad_number):
        self.bad_number = bad_number
        self.delivered = []

    async def send(self, destination, body):
        if destination == self.bad_number:
            raise DeliveryError("provider returned 400", destination=destination)
        self.delivered.append(destination)
        return SendResult(success=True, provider_message_id="SM123")


class SlowSender(MessageSender):
    async def send(self, destination, body):
        await asyncio.sleep(1)
        return SendResult(success=True)


def test_sends_five_oldest_open_tasks(notification_repo, task_repo):
    enable(notification_repo, "u1", "5550000001", frequency=Frequency.WEEKLY, day_of_week="monday")
    tasks = [run(task_repo.create("u1", f"task {i}")) for i in range(7)]
    run(task_repo.set_completed(tasks[0].id, "u1", True))
    sender = LogMessageSender()

    result = run(make_dispatcher(notification_repo, task_repo, sender).run(NOW))

    assert result.sent == 1
    entry = result.results[0]
    assert entry.user_id == "u1"
    assert entry.task_count == 5
    assert entry.send_result.success
    destination, body = sender.sent[0]
    assert destination == "5550000001"
    assert body == format_task_reminder_message([f"task {i}" for i in range(1, 6)])
    assert body.count("\n• ") == 5


def test_user_without_open_tasks_gets_placeholder(notification_repo, task_repo):
    enable(notification_repo, "u1", "5550000001")
    sender = LogMessageSender()

    result = run(make_dispatcher(notification_repo, task_repo, sender).run(NOW))

    assert result.results[0].task_count == 0
    assert result.results[0].send_result.success
    assert NO_TASKS_LINE in sender.sent[0][1]


def test_one_failed_send_does_not_stop_the_batch(notification_repo, task_repo):
    enable(notification_repo, "u1", "5550000001")
    enable(notification_repo, "u2", "5550000002")
    sender = FailingSender("5550000001")

    result = run(make_dispatcher(notification_repo, task_repo, sender).run(NOW))

    by_user = {entry.user_id: entry.send_result for entry in result.results}
    assert result.sent == 2
    assert by_user["u1"].success is False
    assert "400" in by_user["u1"].error
    assert by_user["u2"].success is True
    assert sender.delivered == ["5550000002"]


class CrashingSender(MessageSender):
    """Raises an unexpected error for one destination."""

    def __init__(self, bad_number):
        self.bad_number = bad_number
        self.delivered = []

    async def send(self, destination, body):
        if destination == self.bad_number:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        self.delivered.append(destination)
        return SendResult(success=True, provider_message_id="SM456")


def test_unexpected_sender_error_is_isolated(notification_repo, task_repo):
    enable(notification_repo, "u1", "5550000001")
    enable(notification_repo, "u2", "5550000002")
    sender = CrashingSender("5550000001")

    result = run(make_dispatcher(notification_repo, task_repo, sender).run(NOW))

    by_user = {entry.user_id: entry.send_result for entry in result.results}
    assert result.sent == 2
    assert by_user["u1"].success is False
    assert "Expecting value" in by_user["u1"].error
    assert by_user["u2"].success is True
    assert sender.delivered == ["5550000002"]


def test_slow_send_times_out(notification_repo, task_repo):
    enable(notification_repo, "u1", "5550000001")

    result = run(make_dispatcher(notification_repo, task_repo, SlowSender(), send_timeout=0.05).run(NOW))

    assert result.results[0].send_result.success is False
    assert "timed out" in result.results[0].send_result.error


def test_task_lookup_failure_is_isolated(notification_repo, task_repo):
    enable(notification_repo, "u1", "5550000001")
    broken_repo = MagicMock()
    broken_repo.list_open_by_owner = AsyncMock(side_effect=StorageError("no such table: task"))

    result = run(make_dispatcher(notification_repo, broken_repo, LogMessageSender()).run(NOW))

    assert result.sent == 1
    assert result.results[0].send_result.success is False


def test_nobody_due(notification_repo, task_repo):
    result = run(make_dispatcher(notification_repo, task_repo, LogMessageSender()).run(NOW))
    assert result.to_api() == {"sent": 0, "results": []}


def test_matcher_failure_fails_the_run(task_repo):
    matcher = MagicMock()
    matcher.find_due = AsyncMock(side_effect=StorageError("connection refused"))
    dispatcher = ReminderDispatcher(matcher, task_repo, LogMessageSender())
    with pytest.raises(StorageError):
        run(dispatcher.run(NOW))


def test_run_result_api_shape(notification_repo, task_repo):
    enable(notification_repo, "u1", "5550000001")
    result = run(make_dispatcher(notification_repo, task_repo, LogMessageSender()).run(NOW))

    entry = result.to_api()["results"][0]
    assert set(entry) == {"userId", "phoneNumber", "taskCount", "sendResult"}
    assert set(entry["sendResult"]) == {"success", "providerMessageId", "error"}
