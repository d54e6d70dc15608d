"""Repository for the system settings singleton."""

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.settings import (
    SETTINGS_ROW_ID,
    SystemSettings,
    default_services,
    default_system_health,
)


class SettingsRepository:
    """Async data access layer for the single ``system_settings`` row."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self) -> SystemSettings | None:
        result = await self.session.execute(
            select(SystemSettings).where(SystemSettings.id == SETTINGS_ROW_ID)
        )
        return result.scalar_one_or_none()

    async def get_or_create(self) -> SystemSettings:
        """Return the settings row, creating it with defaults if absent."""
        settings = await self.get()
        if settings is None:
            settings = SystemSettings(
                id=SETTINGS_ROW_ID,
                services=default_services(),
                system_health=default_system_health(),
            )
            self.session.add(settings)
            await self.session.flush()
            await self.session.refresh(settings)
        return settings

    async def update(self, values: dict[str, Any]) -> SystemSettings:
        """Apply a partial update; ``services`` is merged key by key."""
        settings = await self.get_or_create()

        services = values.pop("services", None)
        if services is not None:
            # Reassign so the JSONB column is flagged dirty
            settings.services = {**(settings.services or default_services()), **services}

        for field, value in values.items():
            setattr(settings, field, value)

        await self.session.flush()
        await self.session.refresh(settings)
        return settings

    async def touch_last_backup(self, at: datetime) -> None:
        settings = await self.get_or_create()
        settings.last_backup_time = at
        await self.session.flush()

    async def record_health_check(self, at: datetime, health: dict[str, Any]) -> SystemSettings:
        settings = await self.get_or_create()
        settings.last_health_check = at
        settings.system_health = health
        await self.session.flush()
        await self.session.refresh(settings)
        return settings
