"""
HTTP routes, one module per resource.
"""
from betterdoit.api.routes.cron import router as cron_router
from betterdoit.api.routes.health import router as health_router
from betterdoit.api.routes.settings import router as settings_router
from betterdoit.api.routes.tasks import router as tasks_router

__all__ = ["cron_router", "health_router", "settings_router", "tasks_router"]
