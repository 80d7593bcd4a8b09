"""
Storage layer: schema management and repositories over the database adapter.
"""
from .schema import SchemaManager
from .task_repository import TaskRepository, SORT_ORDER_GAP
from .notification_repository import NotificationSettingRepository

__all__ = [
    'SchemaManager',
    'TaskRepository',
    'SORT_ORDER_GAP',
    'NotificationSettingRepository',
]
