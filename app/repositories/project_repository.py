"""Repository for project data access."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.project import Project
from app.schemas.project import ProjectCreate


class ProjectRepository:
    """Data access layer for projects."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_for_user(self, user_id: str, *, include_all: bool = False) -> list[Project]:
        """Projects owned or mentored by *user_id* (every project for admins)."""
        query = select(Project).order_by(Project.created_at.desc())
        if not include_all:
            query = query.where((Project.owner_id == user_id) | (Project.mentor_id == user_id))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_by_id(self, project_id: str) -> Project | None:
        result = await self.session.execute(select(Project).where(Project.id == project_id))
        return result.scalar_one_or_none()

    async def create(self, data: ProjectCreate, owner_id: str) -> Project:
        project = Project(**data.model_dump(), owner_id=owner_id)
        self.session.add(project)
        await self.session.flush()
        await self.session.refresh(project)
        return project

    async def delete(self, project_id: str) -> bool:
        project = await self.get_by_id(project_id)
        if project is None:
            return False
        await self.session.delete(project)
        await self.session.flush()
        return True

    async def count(self) -> int:
        return await self.session.scalar(select(func.count()).select_from(Project)) or 0
