"""Repository for task data access."""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.filters.task import TaskFilter
from app.models.task import Task, TaskStatus
from app.schemas.task import TaskCreate, TaskUpdate


class TaskRepository:
    """Data access layer for tasks."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_all(self, filters: TaskFilter) -> list[Task]:
        """Get tasks with declarative filtering and sorting."""
        query = filters.sort(filters.filter(select(Task)))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_by_id(self, task_id: str) -> Task | None:
        result = await self.session.execute(select(Task).where(Task.id == task_id))
        return result.scalar_one_or_none()

    async def create(self, data: TaskCreate) -> Task:
        task = Task(**data.model_dump(), status=TaskStatus.PENDING)
        self.session.add(task)
        await self.session.flush()
        await self.session.refresh(task)
        return task

    async def update(self, task_id: str, data: TaskUpdate) -> Task | None:
        """Apply the fields set on *data*; completing a task stamps ``completed_at``."""
        task = await self.get_by_id(task_id)
        if task is None:
            return None

        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            setattr(task, field, value)

        if "status" in changes:
            if changes["status"] == TaskStatus.COMPLETED:
                task.completed_at = task.completed_at or datetime.now(UTC)
            else:
                task.completed_at = None

        await self.session.flush()
        await self.session.refresh(task)
        return task

    async def verify(self, task_id: str, verifier_id: str) -> Task | None:
        """Mark a task as verified by a mentor."""
        task = await self.get_by_id(task_id)
        if task is None:
            return None

        task.is_verified = True
        task.verified_at = datetime.now(UTC)
        task.verified_by = verifier_id

        await self.session.flush()
        await self.session.refresh(task)
        return task

    async def delete(self, task_id: str) -> bool:
        task = await self.get_by_id(task_id)
        if task is None:
            return False
        await self.session.delete(task)
        await self.session.flush()
        return True

    async def get_stats(self) -> dict[str, Any]:
        """Task totals: count by status and the sum of story points."""
        status_result = await self.session.execute(
            select(Task.status, func.count()).group_by(Task.status)
        )
        by_status = {row[0]: row[1] for row in status_result.all()}

        points = await self.session.scalar(select(func.coalesce(func.sum(Task.story_points), 0)))

        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "story_points": int(points or 0),
        }
