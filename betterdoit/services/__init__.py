"""
Service layer for business logic.
Services contain business logic and are independent of HTTP framework.
"""
from betterdoit.services.rebalance_service import RebalanceResult, SortOrderRebalancer
from betterdoit.services.reminder_matcher import ReminderMatcher
from betterdoit.services.reminder_service import ReminderDispatcher
from betterdoit.services.settings_service import SettingsService
from betterdoit.services.task_service import TaskService

__all__ = [
    "RebalanceResult",
    "SortOrderRebalancer",
    "ReminderMatcher",
    "ReminderDispatcher",
    "SettingsService",
    "TaskService",
]
