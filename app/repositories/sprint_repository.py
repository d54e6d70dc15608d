"""Repository for sprint data access."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.sprint import Sprint, SprintStatus
from app.models.task import Task
from app.schemas.sprint import SprintCreate


class SprintRepository:
    """Data access layer for sprints and the tasks assigned to them."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_for_project(self, project_id: str) -> list[Sprint]:
        """Sprints of a project in chronological order."""
        result = await self.session.execute(
            select(Sprint).where(Sprint.project_id == project_id).order_by(Sprint.start_date)
        )
        return list(result.scalars().all())

    async def get_by_id(self, sprint_id: str) -> Sprint | None:
        result = await self.session.execute(select(Sprint).where(Sprint.id == sprint_id))
        return result.scalar_one_or_none()

    async def get_tasks(self, sprint_id: str) -> list[Task]:
        result = await self.session.execute(select(Task).where(Task.sprint_id == sprint_id))
        return list(result.scalars().all())

    async def create(self, data: SprintCreate) -> Sprint:
        sprint = Sprint(**data.model_dump(), status=SprintStatus.PLANNED)
        self.session.add(sprint)
        await self.session.flush()
        await self.session.refresh(sprint)
        return sprint

    async def set_status(self, sprint_id: str, status: SprintStatus) -> Sprint | None:
        sprint = await self.get_by_id(sprint_id)
        if sprint is None:
            return None
        sprint.status = status
        await self.session.flush()
        await self.session.refresh(sprint)
        return sprint

    async def count_by_status(self) -> dict[str, int]:
        """Sprint counts keyed by status; statuses with no sprints are omitted."""
        result = await self.session.execute(
            select(Sprint.status, func.count()).group_by(Sprint.status)
        )
        return {row[0]: row[1] for row in result.all()}
