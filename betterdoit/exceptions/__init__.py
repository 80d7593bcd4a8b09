"""
Exception handlers and standard exceptions for the application.
"""
from betterdoit.exceptions.errors import (
    ServiceError,
    AuthorizationError,
    NotFoundError,
    ValidationError,
    StorageError,
    DeliveryError,
    TaskNotFoundError,
    RebalanceError,
    status_code_for,
    to_error_detail,
)

__all__ = [
    "ServiceError",
    "AuthorizationError",
    "NotFoundError",
    "ValidationError",
    "StorageError",
    "DeliveryError",
    "TaskNotFoundError",
    "RebalanceError",
    "status_code_for",
    "to_error_detail",
]
