"""
Exception handlers for the application.
"""
import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from betterdoit.exceptions.errors import (
    AuthorizationError,
    NotFoundError,
    RebalanceError,
    ServiceError,
    ValidationError,
    status_code_for,
    to_error_detail,
)

logger = logging.getLogger(__name__)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.
    """
    logger.error(
        f"Unhandled exception in {request.method} {request.url.path}: {str(exc)}",
        exc_info=True,
        extra={
            "method": request.method,
            "path": request.url.path,
            "exception_type": type(exc).__name__,
        }
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred.",
            "path": request.url.path,
            "method": request.method,
        }
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle request body/query validation errors with clear messages.
    """
    errors = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        errors.append(f"{field}: {error['msg']}")

    logger.warning(
        f"Validation error in {request.method} {request.url.path}: {', '.join(errors)}",
        extra={"method": request.method, "path": request.url.path},
    )
    return JSONResponse(
        status_code=422,
        content={
            "error": "ValidationError",
            "message": "One or more fields failed validation",
            "errors": errors,
        }
    )


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """
    Handler for ServiceError exceptions.

    Expected client errors are logged as warnings, everything else as errors.
    A failed rebalance also reports the partitions that did commit.
    """
    client_error = isinstance(exc, (AuthorizationError, NotFoundError, ValidationError))
    logger.log(
        logging.WARNING if client_error else logging.ERROR,
        f"Service error in {request.method} {request.url.path}: {exc.message}",
        extra={
            "method": request.method,
            "path": request.url.path,
            "error_type": exc.__class__.__name__,
        }
    )

    content = to_error_detail(exc, include_context=client_error)
    if isinstance(exc, RebalanceError) and exc.result is not None:
        content["result"] = exc.result.to_api()

    response = JSONResponse(status_code=status_code_for(exc), content=content)
    if isinstance(exc, AuthorizationError):
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


def setup_exception_handlers(app):
    """
    Register exception handlers with the FastAPI app.
    """
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
