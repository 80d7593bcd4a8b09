"""
FastAPI application factory.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from betterdoit.api.routes import cron_router, health_router, settings_router, tasks_router
from betterdoit.auth.session import SessionResolver, SignedTokenResolver
from betterdoit.config import Settings, get_settings
from betterdoit.dependencies import ServiceContainer
from betterdoit.exceptions.handlers import setup_exception_handlers

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[ServiceContainer] = None,
    session_resolver: Optional[SessionResolver] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use (defaults to the cached application settings)
        container: Pre-built service container (tests pass one wired to a temp database)
        session_resolver: Resolver for user session tokens; defaults to
            SignedTokenResolver when SESSION_SECRET is set

    Returns:
        Configured FastAPI application. The container is started and stopped
        by the application lifespan.
    """
    settings = settings or get_settings()
    container = container or ServiceContainer(settings)
    if session_resolver is None and settings.session_secret:
        session_resolver = SignedTokenResolver(settings.session_secret)
    if session_resolver is None:
        logger.warning("SESSION_SECRET is not set; user routes will reject every request")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await container.start()
        try:
            yield
        finally:
            await container.stop()

    app = FastAPI(
        title="Better Do It",
        description="Active/master task lists with SMS reminders",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.container = container
    app.state.session_resolver = session_resolver

    setup_exception_handlers(app)
    app.include_router(health_router)
    app.include_router(tasks_router)
    app.include_router(settings_router)
    app.include_router(cron_router)
    return app
