"""Pydantic schemas for sprints and the burndown chart."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from app.models.sprint import SprintStatus


class SprintCreate(BaseModel):
    """Schema for creating a sprint."""

    name: str = Field(..., min_length=1, max_length=255)
    project_id: str
    start_date: datetime
    end_date: datetime
    goal: str | None = None

    @model_validator(mode="after")
    def validate_dates(self) -> "SprintCreate":
        """A sprint cannot end before it starts."""
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class SprintStatusUpdate(BaseModel):
    """Schema for starting or completing a sprint."""

    status: SprintStatus


class SprintResponse(BaseModel):
    """Schema for sprint response."""

    id: str
    project_id: str
    name: str
    goal: str | None
    start_date: datetime
    end_date: datetime
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BurndownPointResponse(BaseModel):
    """One day of the burndown chart."""

    date: str
    ideal: int
    actual: int | None


class BurndownResponse(BaseModel):
    """Burndown chart payload (camelCase on the wire for the chart client)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_points: int
    secured_points: int
    data: list[BurndownPointResponse]
