"""Database models package."""

from app.models.audit_log import AuditLog
from app.models.base import Base
from app.models.project import Project
from app.models.settings import (
    SETTINGS_ROW_ID,
    BackupFrequency,
    ServiceName,
    SystemSettings,
)
from app.models.sprint import Sprint, SprintStatus
from app.models.task import Task, TaskStatus
from app.models.user import UserRole

__all__ = [
    # Base
    "Base",
    # Models
    "Project",
    "Sprint",
    "Task",
    "SystemSettings",
    "AuditLog",
    # Settings
    "SETTINGS_ROW_ID",
    # Enums
    "BackupFrequency",
    "ServiceName",
    "SprintStatus",
    "TaskStatus",
    "UserRole",
]
