"""Background maintenance wiring: backup schedule and cache toggle.

Stored settings are the source of truth; these helpers push them into the
in-process ``ResponseCache`` and ``BackupScheduler`` at startup and after
every admin settings update.
"""

import logging
from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.cache import ResponseCache
from app.models.settings import ServiceName
from app.repositories.settings_repository import SettingsRepository
from app.schemas.config import SettingsResponse
from app.services.backup_scheduler import BackupScheduler
from app.services.backup_service import BackupKind, BackupService
from app.services.config_service import ConfigService

logger = logging.getLogger(__name__)


def apply_runtime_settings(
    settings: SettingsResponse,
    cache: ResponseCache,
    scheduler: BackupScheduler,
) -> None:
    """Sync the cache flag and backup timer with *settings*."""
    cache_enabled = settings.services.get(ServiceName.CACHE_SERVICE, False)
    if cache_enabled != cache.enabled:
        cache.set_enabled(cache_enabled)

    if not settings.services.get(ServiceName.BACKUP_SERVICE, False):
        if scheduler.is_running:
            logger.info("Backup service disabled; stopping scheduled backups")
            scheduler.stop()
        return

    if not scheduler.is_running or scheduler.active_frequency != settings.backup_frequency:
        scheduler.schedule(settings.backup_frequency)


def backup_enabled_checker(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[], Awaitable[bool]]:
    """Re-read the backup toggle at fire time (it may have changed since scheduling)."""

    async def _is_enabled() -> bool:
        async with session_factory() as session:
            enabled = await ConfigService(SettingsRepository(session)).is_enabled(
                ServiceName.BACKUP_SERVICE
            )
            await session.commit()
        return enabled

    return _is_enabled


def create_backup_scheduler(
    backup_service: BackupService,
    session_factory: async_sessionmaker[AsyncSession],
) -> BackupScheduler:
    async def _run_scheduled_backup(kind: str) -> None:
        result = await backup_service.create_backup(BackupKind(kind))
        logger.info("Scheduled backup completed: %s", result.filename)

    return BackupScheduler(
        run_backup=_run_scheduled_backup,
        is_enabled=backup_enabled_checker(session_factory),
    )


async def load_runtime_settings(
    session_factory: async_sessionmaker[AsyncSession],
) -> SettingsResponse:
    """Read (creating if absent) the settings row in its own transaction."""
    async with session_factory() as session:
        settings = await ConfigService(SettingsRepository(session)).get_settings()
        await session.commit()
    return settings
