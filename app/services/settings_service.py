from typing import Any, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.models import AppSetting
from app.schemas.other import AppSettingCreate, AppSettingUpdate
from app.services.exceptions import NotFoundError, ConflictError

class SettingsService:
    """Key/value settings editable at runtime, as opposed to environment config"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list(self, category: Optional[str] = None) -> List[AppSetting]:
        query = select(AppSetting)
        if category:
            query = query.where(AppSetting.category == category)
        result = await self.db.execute(query.order_by(AppSetting.category, AppSetting.key))
        return list(result.scalars().all())

    async def get(self, setting_id: int) -> AppSetting:
        setting = await self.db.get(AppSetting, setting_id)
        if not setting:
            raise NotFoundError(f"Setting {setting_id} not found")
        return setting

    async def get_by_key(self, key: str) -> Optional[AppSetting]:
        result = await self.db.execute(select(AppSetting).where(AppSetting.key == key))
        return result.scalar_one_or_none()

    async def get_value(self, key: str, default: Any = None) -> Any:
        setting = await self.get_by_key(key)
        return setting.value if setting is not None else default

    async def create(self, data: AppSettingCreate) -> AppSetting:
        if await self.get_by_key(data.key):
            raise ConflictError(f"Setting {data.key} already exists")

        setting = AppSetting(**data.model_dump())
        self.db.add(setting)
        await self.db.commit()
        await self.db.refresh(setting)
        return setting

    async def update(self, setting_id: int, data: AppSettingUpdate) -> AppSetting:
        setting = await self.get(setting_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(setting, key, value)
        await self.db.commit()
        await self.db.refresh(setting)
        return setting

    async def delete(self, setting_id: int):
        setting = await self.get(setting_id)
        await self.db.delete(setting)
        await self.db.commit()
