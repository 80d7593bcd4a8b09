"""
Reminder dispatch.

One run matches due users and texts each of them their oldest open tasks.
Users are independent: a slow, failing or unreachable recipient shows up as a
failed entry in the run summary and never stops the others.
"""
import asyncio
import logging
from datetime import datetime
from typing import Optional

from betterdoit.exceptions import DeliveryError, StorageError
from betterdoit.models import NotificationSetting, ReminderResult, ReminderRunResult, SendResult
from betterdoit.services.reminder_matcher import ReminderMatcher
from betterdoit.sms import MessageSender, format_task_reminder_message
from betterdoit.storage.task_repository import TaskRepository

logger = logging.getLogger(__name__)

DEFAULT_TASK_LIMIT = 5


class ReminderDispatcher:
    """Sends reminder messages to every user the matcher reports as due."""

    def __init__(
        self,
        matcher: ReminderMatcher,
        task_repository: TaskRepository,
        sender: MessageSender,
        task_limit: int = DEFAULT_TASK_LIMIT,
        send_timeout: float = 10.0,
        concurrency: int = 10,
    ):
        self.matcher = matcher
        self.task_repository = task_repository
        self.sender = sender
        self.task_limit = task_limit
        self.send_timeout = send_timeout
        self.concurrency = max(concurrency, 1)

    async def run(self, now: Optional[datetime] = None) -> ReminderRunResult:
        """
        Dispatch one round of reminders.

        Args:
            now: Moment to match against (defaults to the current time)

        Returns:
            ReminderRunResult with the number of due users and one entry per user

        Raises:
            StorageError: If the due users could not be queried
        """
        due = await self.matcher.find_due(now)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(setting: NotificationSetting) -> ReminderResult:
            async with semaphore:
                return await self._remind(setting)

        results = await asyncio.gather(*(bounded(setting) for setting in due))
        failed = sum(1 for result in results if not result.send_result.success)
        logger.info(f"Reminder run finished: {len(results)} due, {failed} failed")
        return ReminderRunResult(sent=len(due), results=list(results))

    async def _remind(self, setting: NotificationSetting) -> ReminderResult:
        task_count = 0
        try:
            tasks = await self.task_repository.list_open_by_owner(setting.user_id, self.task_limit)
            task_count = len(tasks)
            message = format_task_reminder_message([task.title for task in tasks])
            send_result = await asyncio.wait_for(
                self.sender.send(setting.phone_number, message),
                timeout=self.send_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Reminder to user {setting.user_id} timed out after {self.send_timeout}s")
            send_result = SendResult(success=False, error=f"Send timed out after {self.send_timeout}s")
        except (DeliveryError, StorageError) as e:
            logger.error(f"Reminder to user {setting.user_id} failed: {e.message}")
            send_result = SendResult(success=False, error=e.message)
        except Exception as e:
            logger.error(f"Unexpected error reminding user {setting.user_id}: {e}", exc_info=True)
            send_result = SendResult(success=False, error=f"Unexpected error: {e}")

        return ReminderResult(
            user_id=setting.user_id,
            phone_number=setting.phone_number,
            task_count=task_count,
            send_result=send_result,
        )
