"""
Health check route.
"""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from betterdoit.dependencies import ServiceContainer, get_container
from betterdoit.exceptions import StorageError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(container: ServiceContainer = Depends(get_container)) -> JSONResponse:
    """Report whether the database answers a trivial query."""
    try:
        await container.adapter.prepare("SELECT 1 AS ok").get()
    except StorageError as e:
        logger.error(f"Health check failed: {e.message}")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "database": container.adapter.db_type.value, "error": e.message},
        )
    return JSONResponse(content={"status": "healthy", "database": container.adapter.db_type.value})
