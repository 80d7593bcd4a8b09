"""
Standard Exception Hierarchy for betterdoit

This module provides a standardized exception hierarchy for consistent error handling
across the task engine and the reminder scheduler. All exceptions inherit from
ServiceError and can be converted to HTTP error responses.
"""
from typing import Any


# ============================================================================
# Base Exception Class
# ============================================================================

class ServiceError(Exception):
    """Base exception for all betterdoit errors.
    
    Attributes:
        message: Human-readable error message
        request_id: Optional request ID for tracing
        context: Dictionary of additional context
        original_error: Optional original exception that caused this error
    """
    
    def __init__(
        self,
        message: str,
        *,
        request_id: str | None = None,
        context: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message)
        self.message = message
        self.request_id = request_id
        self.context = context or {}
        self.original_error = original_error
    
    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for serialization.
        
        Returns:
            Dictionary representation of the exception
        """
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
        }
        if self.request_id:
            result["request_id"] = self.request_id
        if self.context:
            result["context"] = self.context
        if self.original_error:
            result["original_error"] = {
                "type": type(self.original_error).__name__,
                "message": str(self.original_error)
            }
        return result


# ============================================================================
# Common Exception Types
# ============================================================================

class AuthorizationError(ServiceError):
    """Raised when caller credentials or the invocation secret are missing or invalid."""
    
    def __init__(
        self,
        message: str = "Unauthorized",
        *,
        request_id: str | None = None,
        context: dict[str, Any] | None = None
    ):
        super().__init__(message, request_id=request_id, context=context)


class NotFoundError(ServiceError):
    """Raised when a requested resource does not exist or is not owned by the caller.
    
    Attributes:
        resource_type: Type of resource (e.g., "Task", "NotificationSetting")
        resource_id: ID of the resource that was not found
    """
    
    def __init__(
        self,
        resource_type: str,
        resource_id: str | int,
        *,
        message: str | None = None,
        request_id: str | None = None,
        context: dict[str, Any] | None = None
    ):
        """Initialize not found error.
        
        Args:
            resource_type: Type of resource (e.g., "Task", "NotificationSetting")
            resource_id: ID of the resource that was not found
            message: Optional custom error message (auto-generated if not provided)
            request_id: Optional request ID for tracing
            context: Optional additional context
        """
        if message is None:
            message = f"{resource_type} with ID '{resource_id}' not found"
        
        super().__init__(message, request_id=request_id, context=context)
        self.resource_type = resource_type
        self.resource_id = str(resource_id)
        self.context.setdefault("resource_type", resource_type)
        self.context.setdefault("resource_id", str(resource_id))


class ValidationError(ServiceError):
    """Raised when input validation fails.
    
    Attributes:
        field: Optional field name that failed validation
        value: Optional value that failed validation
    """
    
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        request_id: str | None = None,
        context: dict[str, Any] | None = None
    ):
        super().__init__(message, request_id=request_id, context=context)
        self.field = field
        self.value = value
        if field is not None:
            self.context.setdefault("field", field)
        if value is not None:
            self.context.setdefault("value", str(value))


class StorageError(ServiceError):
    """Raised when a storage backend query or transaction fails.
    
    Attributes:
        operation: Optional statement or operation that failed (e.g., "UPDATE", "COMMIT")
        original_error: The backend driver exception
    """
    
    def __init__(
        self,
        message: str,
        *,
        original_error: Exception | None = None,
        operation: str | None = None,
        request_id: str | None = None,
        context: dict[str, Any] | None = None
    ):
        super().__init__(message, request_id=request_id, context=context, original_error=original_error)
        self.operation = operation
        if operation is not None:
            self.context.setdefault("operation", operation)


class DeliveryError(ServiceError):
    """Raised by a message sender when the external transport rejects or loses a message.
    
    Attributes:
        destination: Phone number the message was addressed to
    """
    
    def __init__(
        self,
        message: str,
        *,
        destination: str | None = None,
        original_error: Exception | None = None,
        context: dict[str, Any] | None = None
    ):
        super().__init__(message, context=context, original_error=original_error)
        self.destination = destination
        if destination is not None:
            self.context.setdefault("destination", destination)


# ============================================================================
# Service-Specific Exceptions
# ============================================================================

class TaskNotFoundError(NotFoundError):
    """Raised when a task is not found for its owner."""
    
    def __init__(self, task_id: str | int, **kwargs):
        super().__init__("Task", task_id, **kwargs)
        self.task_id = task_id  # Convenience attribute


class RebalanceError(StorageError):
    """Raised when at least one partition of a rebalance run failed.
    
    The ``result`` attribute carries the per-partition summary, including the
    counts of partitions that committed successfully.
    """
    
    def __init__(self, message: str, *, result: Any, original_error: Exception | None = None):
        super().__init__(message, original_error=original_error, operation="REBALANCE")
        self.result = result


# ============================================================================
# Helper Functions for HTTP Integration
# ============================================================================

# Ordered most-specific first; isinstance() lookup walks this list.
STATUS_CODE_MAP: list[tuple[type, int]] = [
    (AuthorizationError, 401),
    (NotFoundError, 404),
    (ValidationError, 422),
    (DeliveryError, 502),
    (StorageError, 500),
]


def status_code_for(exc: ServiceError, default_status_code: int = 500) -> int:
    """Map a ServiceError to an HTTP status code."""
    for exc_type, status_code in STATUS_CODE_MAP:
        if isinstance(exc, exc_type):
            return status_code
    return default_status_code


def to_error_detail(exc: ServiceError, *, include_context: bool = True) -> dict[str, Any]:
    """Build the JSON body returned for a ServiceError.
    
    Args:
        exc: Service error to convert
        include_context: Whether to include exception context in response
    
    Returns:
        Dictionary with error type, message and optional context
    """
    detail = {
        "error": exc.__class__.__name__,
        "message": exc.message,
    }
    
    if include_context and exc.context:
        detail["context"] = exc.context
    
    if exc.request_id:
        detail["request_id"] = exc.request_id
    
    return detail


__all__ = [
    "ServiceError",
    "AuthorizationError",
    "NotFoundError",
    "ValidationError",
    "StorageError",
    "DeliveryError",
    "TaskNotFoundError",
    "RebalanceError",
    "STATUS_CODE_MAP",
    "status_code_for",
    "to_error_detail",
]
