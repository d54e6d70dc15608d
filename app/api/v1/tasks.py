"""Task API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi_filter import FilterDepends

from app.auth.dependencies import CurrentUser, require_role
from app.constants import ACTION_DELETE_TASK, ACTION_VERIFY_TASK
from app.dependencies import DBSession
from app.filters.task import TaskFilter
from app.providers import ProjectRepo, TaskRepo
from app.schemas.task import TaskCreate, TaskResponse, TaskUpdate
from app.utils.audit import audit_logged, record_action

router = APIRouter()


def _task_not_found(task_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Task '{task_id}' not found",
    )


@router.get("", response_model=list[TaskResponse])
async def list_tasks(
    repo: TaskRepo,
    _user: CurrentUser,
    filters: TaskFilter = FilterDepends(TaskFilter),
) -> list[TaskResponse]:
    """
    List tasks with optional filtering and sorting.

    - **project_id** / **sprint_id**: Scope to a project or sprint
    - **status**: Pending, In Progress or Completed
    - **is_verified**: Only verified (or unverified) tasks
    - **order_by**: Sort fields (e.g. ``-story_points``, ``created_at``)
    """
    tasks = await repo.get_all(filters)
    return [TaskResponse.model_validate(t) for t in tasks]


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    body: TaskCreate,
    repo: TaskRepo,
    projects: ProjectRepo,
    _user: CurrentUser,
) -> TaskResponse:
    if await projects.get_by_id(body.project_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    task = await repo.create(body)
    return TaskResponse.model_validate(task)


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    body: TaskUpdate,
    repo: TaskRepo,
    _user: CurrentUser,
) -> TaskResponse:
    """Update a task. Moving it to Completed stamps ``completed_at``."""
    task = await repo.update(task_id, body)
    if task is None:
        raise _task_not_found(task_id)
    return TaskResponse.model_validate(task)


@router.post(
    "/{task_id}/verify",
    response_model=TaskResponse,
    dependencies=[
        Depends(require_role("mentor", "admin")),
        Depends(audit_logged(ACTION_VERIFY_TASK)),
    ],
)
async def verify_task(
    task_id: str,
    repo: TaskRepo,
    current_user: CurrentUser,
) -> TaskResponse:
    """Mark a task verified; its points count as secured from today."""
    task = await repo.verify(task_id, verifier_id=current_user.id)
    if task is None:
        raise _task_not_found(task_id)
    return TaskResponse.model_validate(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: str,
    request: Request,
    repo: TaskRepo,
    db: DBSession,
    current_user: CurrentUser,
) -> None:
    task = await repo.get_by_id(task_id)
    if task is None:
        raise _task_not_found(task_id)

    title = task.title
    await repo.delete(task_id)
    await record_action(
        db,
        ACTION_DELETE_TASK,
        actor_id=current_user.id,
        resource=f"Task: {task_id}",
        details={"title": title},
        request=request,
    )
