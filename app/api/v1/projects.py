"""Project API endpoints."""

from fastapi import APIRouter, HTTPException, Request, status

from app.auth.dependencies import CurrentUser
from app.constants import ACTION_DELETE_PROJECT
from app.dependencies import DBSession
from app.models.project import Project
from app.models.user import UserRole
from app.providers import ProjectRepo
from app.schemas.auth import TokenUser
from app.schemas.project import ProjectCreate, ProjectResponse
from app.utils.audit import record_action

router = APIRouter()


def _can_access(project: Project, user: TokenUser) -> bool:
    return user.role == UserRole.admin or user.id in (project.owner_id, project.mentor_id)


@router.get("", response_model=list[ProjectResponse])
async def list_projects(repo: ProjectRepo, current_user: CurrentUser) -> list[ProjectResponse]:
    """Projects the caller owns or mentors; admins see every project."""
    projects = await repo.list_for_user(
        current_user.id, include_all=current_user.role == UserRole.admin
    )
    return [ProjectResponse.model_validate(p) for p in projects]


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    body: ProjectCreate,
    repo: ProjectRepo,
    current_user: CurrentUser,
) -> ProjectResponse:
    """Create a project owned by the caller."""
    project = await repo.create(body, owner_id=current_user.id)
    return ProjectResponse.model_validate(project)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    repo: ProjectRepo,
    current_user: CurrentUser,
) -> ProjectResponse:
    project = await repo.get_by_id(project_id)
    if project is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    if not _can_access(project, current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a project member")
    return ProjectResponse.model_validate(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    request: Request,
    repo: ProjectRepo,
    db: DBSession,
    current_user: CurrentUser,
) -> None:
    """Delete a project with its sprints and tasks (owner or admin)."""
    project = await repo.get_by_id(project_id)
    if project is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    if current_user.role != UserRole.admin and project.owner_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the owner can delete a project",
        )

    name = project.name
    await repo.delete(project_id)
    await record_action(
        db,
        ACTION_DELETE_PROJECT,
        actor_id=current_user.id,
        resource=f"Project: {project_id}",
        details={"name": name},
        request=request,
    )
