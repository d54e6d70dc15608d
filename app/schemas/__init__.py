"""Pydantic schemas package."""
from app.schemas.config import SettingsResponse, SettingsUpdateRequest
from app.schemas.project import ProjectCreate, ProjectResponse
from app.schemas.sprint import (
    BurndownPointResponse,
    BurndownResponse,
    SprintCreate,
    SprintResponse,
    SprintStatusUpdate,
)
from app.schemas.task import TaskCreate, TaskResponse, TaskUpdate

__all__ = [
    # Settings schemas
    "SettingsResponse",
    "SettingsUpdateRequest",
    # Project schemas
    "ProjectCreate",
    "ProjectResponse",
    # Sprint schemas
    "SprintCreate",
    "SprintStatusUpdate",
    "SprintResponse",
    "BurndownPointResponse",
    "BurndownResponse",
    # Task schemas
    "TaskCreate",
    "TaskUpdate",
    "TaskResponse",
]
