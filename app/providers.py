"""FastAPI dependency providers for repositories and services.

Kept apart from ``dependencies.py`` so that module stays free of
repository imports. Route modules should import type aliases from here.
"""

from typing import Annotated

from fastapi import Depends

from app.dependencies import DBSession
from app.repositories.audit_repository import AuditRepository
from app.repositories.project_repository import ProjectRepository
from app.repositories.settings_repository import SettingsRepository
from app.repositories.sprint_repository import SprintRepository
from app.repositories.task_repository import TaskRepository
from app.services.config_service import ConfigService

# ---------------------------------------------------------------------------
# Repository providers
# ---------------------------------------------------------------------------


def get_project_repository(db: DBSession) -> ProjectRepository:
    return ProjectRepository(db)


def get_sprint_repository(db: DBSession) -> SprintRepository:
    return SprintRepository(db)


def get_task_repository(db: DBSession) -> TaskRepository:
    return TaskRepository(db)


def get_settings_repository(db: DBSession) -> SettingsRepository:
    return SettingsRepository(db)


def get_audit_repository(db: DBSession) -> AuditRepository:
    return AuditRepository(db)


ProjectRepo = Annotated[ProjectRepository, Depends(get_project_repository)]
SprintRepo = Annotated[SprintRepository, Depends(get_sprint_repository)]
TaskRepo = Annotated[TaskRepository, Depends(get_task_repository)]
SettingsRepo = Annotated[SettingsRepository, Depends(get_settings_repository)]
AuditRepo = Annotated[AuditRepository, Depends(get_audit_repository)]

# ---------------------------------------------------------------------------
# Service providers
# ---------------------------------------------------------------------------


def get_config_service(repo: SettingsRepo) -> ConfigService:
    return ConfigService(repo)


ConfigSvc = Annotated[ConfigService, Depends(get_config_service)]


def require_service(service: str):
    """Dependency factory that rejects the request when *service* is toggled off.

    Raises ``FeatureDisabledError``, which the application maps to 503.

    Usage::

        @router.post("/backup/trigger", dependencies=[Depends(require_service("backupService"))])
    """

    async def _check_enabled(config: ConfigSvc) -> None:
        await config.require_enabled(service)

    return _check_enabled
