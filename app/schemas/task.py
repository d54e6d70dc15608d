"""Pydantic schemas for tasks."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.models.task import TaskStatus


class TaskCreate(BaseModel):
    """Schema for creating a task."""

    title: str = Field(..., min_length=1, max_length=255)
    project_id: str
    sprint_id: str | None = None
    description: str | None = None
    story_points: int = Field(0, ge=0, le=1000)


class TaskUpdate(BaseModel):
    """Schema for updating a task."""

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    sprint_id: str | None = None
    status: TaskStatus | None = None
    story_points: int | None = Field(None, ge=0, le=1000)


class TaskResponse(BaseModel):
    """Schema for task response."""

    id: str
    project_id: str
    sprint_id: str | None
    title: str
    description: str | None
    status: str
    story_points: int
    completed_at: datetime | None
    is_verified: bool
    verified_at: datetime | None
    verified_by: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
