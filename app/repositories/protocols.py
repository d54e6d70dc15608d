"""Protocol definitions for repository interfaces.

These protocols enable type-safe mocking in tests and decouple service
layer code from concrete SQLAlchemy implementations.
"""

from datetime import datetime
from typing import Any, Protocol

from app.models.settings import SystemSettings


class SettingsRepositoryProtocol(Protocol):
    """Interface for the settings singleton."""

    async def get_or_create(self) -> SystemSettings: ...

    async def update(self, values: dict[str, Any]) -> SystemSettings: ...

    async def touch_last_backup(self, at: datetime) -> None: ...

    async def record_health_check(
        self, at: datetime, health: dict[str, Any]
    ) -> SystemSettings: ...
