"""Database repositories for data access."""
from app.repositories.audit_repository import AuditRepository
from app.repositories.project_repository import ProjectRepository
from app.repositories.settings_repository import SettingsRepository
from app.repositories.sprint_repository import SprintRepository
from app.repositories.task_repository import TaskRepository

__all__ = [
    "AuditRepository",
    "ProjectRepository",
    "SettingsRepository",
    "SprintRepository",
    "TaskRepository",
]
