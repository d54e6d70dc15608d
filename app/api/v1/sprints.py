"""Sprint API endpoints, including the burndown chart."""

from fastapi import APIRouter, HTTPException, Request, status

from app.auth.dependencies import CurrentUser
from app.constants import ACTION_CREATE_SPRINT, ACTION_UPDATE_SPRINT_STATUS
from app.core.burndown import compute_burndown
from app.dependencies import DBSession
from app.providers import ProjectRepo, SprintRepo
from app.schemas.sprint import (
    BurndownPointResponse,
    BurndownResponse,
    SprintCreate,
    SprintResponse,
    SprintStatusUpdate,
)
from app.utils.audit import record_action

router = APIRouter()


def _sprint_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sprint not found")


@router.get("/project/{project_id}", response_model=list[SprintResponse])
async def list_project_sprints(
    project_id: str,
    repo: SprintRepo,
    _user: CurrentUser,
) -> list[SprintResponse]:
    """Sprints of a project ordered by start date."""
    sprints = await repo.list_for_project(project_id)
    return [SprintResponse.model_validate(s) for s in sprints]


@router.post("", response_model=SprintResponse, status_code=status.HTTP_201_CREATED)
async def create_sprint(
    body: SprintCreate,
    request: Request,
    repo: SprintRepo,
    projects: ProjectRepo,
    db: DBSession,
    current_user: CurrentUser,
) -> SprintResponse:
    """Create a sprint in the Planned state."""
    if await projects.get_by_id(body.project_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")

    sprint = await repo.create(body)
    await record_action(
        db,
        ACTION_CREATE_SPRINT,
        actor_id=current_user.id,
        resource=f"Sprint: {sprint.id}",
        details={"name": sprint.name},
        request=request,
    )
    return SprintResponse.model_validate(sprint)


@router.put("/{sprint_id}/status", response_model=SprintResponse)
async def update_sprint_status(
    sprint_id: str,
    body: SprintStatusUpdate,
    request: Request,
    repo: SprintRepo,
    db: DBSession,
    current_user: CurrentUser,
) -> SprintResponse:
    """Start or complete a sprint."""
    sprint = await repo.set_status(sprint_id, body.status)
    if sprint is None:
        raise _sprint_not_found()

    await record_action(
        db,
        ACTION_UPDATE_SPRINT_STATUS,
        actor_id=current_user.id,
        resource=f"Sprint: {sprint.id}",
        details={"status": body.status.value},
        request=request,
    )
    return SprintResponse.model_validate(sprint)


@router.get(
    "/{sprint_id}/burndown",
    response_model=BurndownResponse,
    response_model_by_alias=True,
)
async def get_burndown(
    sprint_id: str,
    repo: SprintRepo,
    _user: CurrentUser,
) -> BurndownResponse:
    """
    Burndown chart data for a sprint.

    - **ideal**: linear ramp from 0 to the sprint's total story points
    - **actual**: cumulative points of tasks verified by that day
      (``null`` for days that have not happened yet)
    """
    sprint = await repo.get_by_id(sprint_id)
    if sprint is None:
        raise _sprint_not_found()

    tasks = await repo.get_tasks(sprint_id)
    result = compute_burndown(sprint, tasks)

    return BurndownResponse(
        total_points=result.total_points,
        secured_points=result.secured_points,
        data=[
            BurndownPointResponse(date=p.date, ideal=p.ideal, actual=p.actual)
            for p in result.series
        ],
    )
