"""
SMS delivery for task reminders.

The dispatcher only depends on ``MessageSender.send(destination, body)``.
Failures are raised as DeliveryError and turned into per-user results by the
caller; nothing here retries.
"""
import logging
import uuid
from abc import ABC, abstractmethod
from typing import List

import httpx

from betterdoit.exceptions import DeliveryError
from betterdoit.models import SendResult

logger = logging.getLogger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"

REMINDER_HEADER = (
    "Here's a reminder to finish those incomplete tasks. "
    "You can't be annoyed because you set this reminder up!"
)
REMINDER_FOOTER = "Better Do It"
NO_TASKS_LINE = "• No incomplete tasks found"


def format_task_reminder_message(titles: List[str]) -> str:
    """Build the reminder text: header, one bullet per task title, footer."""
    if titles:
        task_list = "\n".join(f"• {title}" for title in titles)
    else:
        task_list = NO_TASKS_LINE
    return f"{REMINDER_HEADER}\n\n{task_list}\n\n{REMINDER_FOOTER}"


class MessageSender(ABC):
    """Capability to deliver one text message to one phone number."""

    @abstractmethod
    async def send(self, destination: str, body: str) -> SendResult:
        """
        Deliver a message.

        Args:
            destination: Digits-only phone number
            body: Message text

        Returns:
            SendResult with the provider's message id on success

        Raises:
            DeliveryError: If the provider rejected the message or could not be reached
        """


class TwilioMessageSender(MessageSender):
    """Sends SMS through the Twilio Messages REST endpoint."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        timeout: float = 10.0,
        country_code: str = "+1",
        api_base: str = TWILIO_API_BASE,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.timeout = timeout
        self.country_code = country_code
        self.api_base = api_base.rstrip("/")

    @property
    def messages_url(self) -> str:
        return f"{self.api_base}/Accounts/{self.account_sid}/Messages.json"

    async def send(self, destination: str, body: str) -> SendResult:
        data = {
            "To": f"{self.country_code}{destination}",
            "From": self.from_number,
            "Body": body,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.messages_url,
                    data=data,
                    auth=(self.account_sid, self.auth_token),
                )
        except httpx.TimeoutException as e:
            raise DeliveryError(f"SMS provider timed out for {destination}",
                                destination=destination, original_error=e)
        except httpx.RequestError as e:
            raise DeliveryError(f"SMS provider request failed for {destination}: {e}",
                                destination=destination, original_error=e)

        if response.status_code >= 400:
            try:
                detail = response.json().get("message", response.text)
            except ValueError:
                detail = response.text
            raise DeliveryError(
                f"SMS provider returned {response.status_code} for {destination}: {detail[:200]}",
                destination=destination,
                context={"status_code": response.status_code},
            )

        try:
            sid = response.json().get("sid")
        except ValueError as e:
            raise DeliveryError(
                f"SMS provider returned an unreadable body for {destination}",
                destination=destination,
                context={"status_code": response.status_code},
                original_error=e,
            )
        logger.info(f"SMS sent successfully to {destination}: {sid}")
        return SendResult(success=True, provider_message_id=sid)


class LogMessageSender(MessageSender):
    """Dry-run sender: logs the message instead of delivering it."""

    def __init__(self):
        self.sent: List[tuple] = []

    async def send(self, destination: str, body: str) -> SendResult:
        message_id = f"log-{uuid.uuid4().hex[:12]}"
        self.sent.append((destination, body))
        logger.info(f"[dry-run] SMS to {destination} ({len(body)} chars): {message_id}")
        return SendResult(success=True, provider_message_id=message_id)


def get_message_sender(settings=None) -> MessageSender:
    """
    Build the sender selected by ``settings.sms_backend``.

    Raises:
        ValueError: If the Twilio backend is selected without credentials
    """
    if settings is None:
        from betterdoit.config import get_settings
        settings = get_settings()

    if settings.sms_backend == "twilio":
        missing: List[str] = [
            name for name, value in (
                ("TWILIO_ACCOUNT_SID", settings.twilio_account_sid),
                ("TWILIO_AUTH_TOKEN", settings.twilio_auth_token),
                ("TWILIO_PHONE_NUMBER", settings.twilio_phone_number),
            ) if not value
        ]
        if missing:
            raise ValueError(f"Twilio SMS backend requires {', '.join(missing)}")
        return TwilioMessageSender(
            settings.twilio_account_sid,
            settings.twilio_auth_token,
            settings.twilio_phone_number,
            timeout=settings.sms_send_timeout,
        )
    return LogMessageSender()


__all__ = [
    "MessageSender",
    "TwilioMessageSender",
    "LogMessageSender",
    "get_message_sender",
    "format_task_reminder_message",
    "NO_TASKS_LINE",
]
