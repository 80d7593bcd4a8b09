"""
Service container and FastAPI dependency getters.

One container is built per process. It owns the database adapter and wires
repositories and services on top of it. Routes receive services through
``Depends(get_task_service)`` and friends, which read the container from
``app.state``.
"""
import logging
from typing import Optional

from fastapi import Request

from betterdoit.config import Settings, get_settings
from betterdoit.db_adapter import BaseDatabaseAdapter, get_database_adapter
from betterdoit.services import (
    ReminderDispatcher,
    ReminderMatcher,
    SettingsService,
    SortOrderRebalancer,
    TaskService,
)
from betterdoit.sms import MessageSender, get_message_sender
from betterdoit.storage import NotificationSettingRepository, SchemaManager, TaskRepository

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Wires storage, services and the message sender for one process."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        adapter: Optional[BaseDatabaseAdapter] = None,
        sender: Optional[MessageSender] = None,
    ):
        self.settings = settings or get_settings()
        self.adapter = adapter or get_database_adapter(self.settings)
        self.sender = sender or get_message_sender(self.settings)

        self.task_repository = TaskRepository(self.adapter)
        self.notification_repository = NotificationSettingRepository(self.adapter)

        self.rebalancer = SortOrderRebalancer(self.adapter)
        self.task_service = TaskService(
            self.task_repository,
            rebalancer=self.rebalancer,
            max_active_tasks=self.settings.max_active_tasks,
        )
        self.settings_service = SettingsService(self.notification_repository)
        self.matcher = ReminderMatcher(self.notification_repository, timezone=self.settings.reminder_timezone)
        self.dispatcher = ReminderDispatcher(
            self.matcher,
            self.task_repository,
            self.sender,
            task_limit=self.settings.reminder_task_limit,
            send_timeout=self.settings.sms_send_timeout,
            concurrency=self.settings.reminder_concurrency,
        )

    async def start(self, initialize_schema: bool = True) -> None:
        """Connect the adapter and make sure the schema exists."""
        await self.adapter.connect()
        if initialize_schema:
            await SchemaManager(self.adapter).initialize_schema()
        logger.info(f"Service container started ({self.adapter.db_type.value})")

    async def stop(self) -> None:
        await self.adapter.close()
        logger.info("Service container stopped")


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_task_service(request: Request) -> TaskService:
    return get_container(request).task_service


def get_settings_service(request: Request) -> SettingsService:
    return get_container(request).settings_service


def get_rebalancer(request: Request) -> SortOrderRebalancer:
    return get_container(request).rebalancer


def get_dispatcher(request: Request) -> ReminderDispatcher:
    return get_container(request).dispatcher
