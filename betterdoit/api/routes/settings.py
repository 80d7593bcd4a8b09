"""
Account settings routes (SMS reminder preferences).
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from betterdoit.api.schemas import NotificationSettingUpdate
from betterdoit.auth.dependencies import get_current_user
from betterdoit.dependencies import get_settings_service
from betterdoit.services import SettingsService

router = APIRouter(prefix="/api/account-settings", tags=["settings"])


@router.get("")
async def get_account_settings(
    user_id: str = Depends(get_current_user),
    service: SettingsService = Depends(get_settings_service),
) -> Dict[str, Any]:
    setting = await service.get(user_id)
    return setting.to_api()


@router.post("")
async def save_account_settings(
    body: NotificationSettingUpdate,
    user_id: str = Depends(get_current_user),
    service: SettingsService = Depends(get_settings_service),
) -> Dict[str, Any]:
    setting = await service.save(
        user_id,
        phone_number=body.phone_number,
        frequency=body.frequency,
        time=body.time,
        day_of_week=body.day_of_week,
        enabled=body.enabled,
    )
    return {"success": True, "settings": setting.to_api()}
