"""
Scheduled-trigger routes.
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from betterdoit.auth.dependencies import verify_cron_request
from betterdoit.dependencies import get_dispatcher
from betterdoit.services import ReminderDispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", tags=["cron"])


@router.post("/send-reminders", dependencies=[Depends(verify_cron_request)])
async def send_reminders(
    dispatcher: ReminderDispatcher = Depends(get_dispatcher),
) -> Dict[str, Any]:
    """Text every user whose reminder is due this minute."""
    result = await dispatcher.run()
    return result.to_api()
