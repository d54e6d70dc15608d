"""Service layer for system settings and feature toggles."""

from datetime import UTC, datetime
from typing import Any

from app.models.settings import ServiceName, SystemSettings
from app.repositories.protocols import SettingsRepositoryProtocol
from app.schemas.config import SettingsResponse, SettingsUpdateRequest

_SERVICE_LABELS: dict[str, str] = {
    ServiceName.API_SERVER: "API server",
    ServiceName.DATABASE: "Database",
    ServiceName.EMAIL_SERVICE: "Email service",
    ServiceName.GITHUB_INTEGRATION: "GitHub integration",
    ServiceName.FILE_STORAGE: "File storage",
    ServiceName.NOTIFICATION_SERVICE: "Notification service",
    ServiceName.CACHE_SERVICE: "Cache service",
    ServiceName.BACKUP_SERVICE: "Backup service",
}


class FeatureDisabledError(Exception):
    """A settings-gated feature was invoked while its toggle is off."""

    def __init__(self, service: str):
        self.service = service
        super().__init__(f"{_SERVICE_LABELS.get(service, service)} is disabled")


class ConfigService:
    """Business logic for the settings singleton."""

    def __init__(self, repo: SettingsRepositoryProtocol):
        self._repo = repo

    async def get_settings(self) -> SettingsResponse:
        settings = await self._repo.get_or_create()
        return SettingsResponse.model_validate(settings)

    async def update_settings(self, body: SettingsUpdateRequest) -> SettingsResponse:
        """Apply a partial update. Fields left unset are not touched."""
        values: dict[str, Any] = body.model_dump(exclude_unset=True)
        if values.get("backup_frequency") is not None:
            values["backup_frequency"] = values["backup_frequency"].value
        settings = await self._repo.update(values)
        return SettingsResponse.model_validate(settings)

    async def is_enabled(self, service: str) -> bool:
        """Whether *service* is toggled on. Unknown names count as disabled."""
        settings: SystemSettings = await self._repo.get_or_create()
        return settings.is_service_enabled(service)

    async def require_enabled(self, service: str) -> None:
        """Raise ``FeatureDisabledError`` if *service* is toggled off."""
        if not await self.is_enabled(service):
            raise FeatureDisabledError(service)

    async def record_health_check(self, health: dict[str, Any]) -> SettingsResponse:
        settings = await self._repo.record_health_check(datetime.now(UTC), health)
        return SettingsResponse.model_validate(settings)
