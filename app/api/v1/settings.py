from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from app.database import get_db
from app.dependencies import get_current_user, get_current_admin
from app.schemas.other import AppSettingCreate, AppSettingUpdate, AppSettingResponse
from app.services.settings_service import SettingsService
from app.api.v1.websocket import broadcast_data_update
from app.models import User

router = APIRouter(prefix="/settings", tags=["Settings"])

@router.get("", response_model=List[AppSettingResponse])
async def list_settings(
    category: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await SettingsService(db).list(category)

@router.get("/{setting_id}", response_model=AppSettingResponse)
async def get_setting(
    setting_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await SettingsService(db).get(setting_id)

@router.post("", response_model=AppSettingResponse, status_code=status.HTTP_201_CREATED)
async def create_setting(
    setting_data: AppSettingCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin)
):
    setting = await SettingsService(db).create(setting_data)
    await broadcast_data_update("setting", "created", {"id": setting.id, "key": setting.key})
    return setting

@router.patch("/{setting_id}", response_model=AppSettingResponse)
async def update_setting(
    setting_id: int,
    setting_data: AppSettingUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin)
):
    setting = await SettingsService(db).update(setting_id, setting_data)
    await broadcast_data_update("setting", "updated", {"id": setting.id, "key": setting.key})
    return setting

@router.delete("/{setting_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_setting(
    setting_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin)
):
    await SettingsService(db).delete(setting_id)
    await broadcast_data_update("setting", "deleted", {"id": setting_id})
