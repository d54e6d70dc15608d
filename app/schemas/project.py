"""Pydantic schemas for projects."""

from datetime import datetime

from pydantic import BaseModel, Field


class ProjectCreate(BaseModel):
    """Schema for creating a project."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    mentor_id: str | None = Field(None, max_length=100)


class ProjectResponse(BaseModel):
    """Schema for project response."""

    id: str
    name: str
    description: str | None
    owner_id: str
    mentor_id: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
