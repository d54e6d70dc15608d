"""Declarative filter for tasks."""

from typing import Optional

from fastapi_filter.contrib.sqlalchemy import Filter

from app.models.task import Task


class TaskFilter(Filter):
    """Query-param filter for the ``GET /tasks`` endpoint."""

    project_id: Optional[str] = None
    sprint_id: Optional[str] = None
    status: Optional[str] = None
    is_verified: Optional[bool] = None
    order_by: Optional[list[str]] = None

    class Constants(Filter.Constants):
        model = Task
