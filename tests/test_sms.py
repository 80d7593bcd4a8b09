"""
Tests for message formatting and the SMS senders.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from betterdoit.exceptions import DeliveryError
from betterdoit.sms import (
    NO_TASKS_LINE,
    LogMessageSender,
    TwilioMessageSender,
    format_task_reminder_message,
    get_message_sender,
)

from conftest import run


def test_message_lists_each_title():
    message = format_task_reminder_message(["walk dog", "pay rent"])
    assert "• walk dog\n• pay rent" in message
    assert message.endswith("Better Do It")


def test_message_without_tasks_uses_placeholder():
    assert NO_TASKS_LINE in format_task_reminder_message([])


def mock_async_client(response=None, side_effect=None):
    """Patch target for httpx.AsyncClient used as an async context manager."""
    client = MagicMock()
    client.post = AsyncMock(return_value=response, side_effect=side_effect)
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=client)
    factory.return_value.__aexit__ = AsyncMock(return_value=False)
    return factory, client


class TestTwilioMessageSender:
    """Tests for TwilioMessageSender with a mocked httpx client."""

    def sender(self):
        return TwilioMessageSender("AC123", "token", "+15550009999", timeout=5.0)

    def test_success(self):
        response = httpx.Response(201, json={"sid": "SM1"})
        factory, client = mock_async_client(response)
        with patch("betterdoit.sms.httpx.AsyncClient", factory):
            result = run(self.sender().send("5551234567", "hello"))

        assert result.success
        assert result.provider_message_id == "SM1"
        url = client.post.call_args.args[0]
        assert url.endswith("/Accounts/AC123/Messages.json")
        assert client.post.call_args.kwargs["data"]["To"] == "+15551234567"

    def test_provider_rejection(self):
        response = httpx.Response(400, json={"message": "invalid number"})
        factory, _ = mock_async_client(response)
        with patch("betterdoit.sms.httpx.AsyncClient", factory):
            with pytest.raises(DeliveryError) as exc_info:
                run(self.sender().send("5551234567", "hello"))
        assert "invalid number" in exc_info.value.message
        assert exc_info.value.context["status_code"] == 400

    def test_timeout(self):
        factory, _ = mock_async_client(side_effect=httpx.ReadTimeout("slow"))
        with patch("betterdoit.sms.httpx.AsyncClient", factory):
            with pytest.raises(DeliveryError):
                run(self.sender().send("5551234567", "hello"))

    def test_unreadable_success_body(self):
        response = httpx.Response(200, text="<html>gateway</html>")
        factory, _ = mock_async_client(response)
        with patch("betterdoit.sms.httpx.AsyncClient", factory):
            with pytest.raises(DeliveryError) as exc_info:
                run(self.sender().send("5551234567", "hello"))
        assert exc_info.value.context["status_code"] == 200


def test_log_sender_records_messages():
    sender = LogMessageSender()
    result = run(sender.send("5551234567", "hi"))
    assert result.success
    assert sender.sent == [("5551234567", "hi")]


def test_get_message_sender(settings):
    assert isinstance(get_message_sender(settings), LogMessageSender)

    twilio = settings.model_copy(update={"sms_backend": "twilio", "twilio_account_sid": "AC1",
                                         "twilio_auth_token": "t", "twilio_phone_number": "+1555"})
    assert isinstance(get_message_sender(twilio), TwilioMessageSender)

    with pytest.raises(ValueError):
        get_message_sender(settings.model_copy(update={"sms_backend": "twilio"}))
