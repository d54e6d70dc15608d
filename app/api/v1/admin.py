"""Admin console API: settings, backups, health, analytics and audit.

Every route requires the ``admin`` role.
"""

import logging
import time
from datetime import UTC, datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import FileResponse

from app.auth.dependencies import CurrentUser, require_role
from app.constants import (
    ACTION_BACKUP_DELETED,
    ACTION_UPDATE_SETTINGS,
    ALERT_FEED_LIMIT,
    ALERT_WINDOW_HOURS,
    AUDIT_LIST_LIMIT,
    CRITICAL_AUDIT_ACTIONS,
)
from app.dependencies import BackupSvc, Cache, DBSession, Scheduler
from app.models.settings import ServiceName
from app.models.sprint import SprintStatus
from app.models.task import TaskStatus
from app.providers import (
    AuditRepo,
    ConfigSvc,
    ProjectRepo,
    SprintRepo,
    TaskRepo,
    require_service,
)
from app.rate_limit import limiter
from app.schemas.admin import (
    AnalyticsResponse,
    AuditAlertsResponse,
    AuditLogResponse,
    BackupInfoResponse,
    BackupTriggerResponse,
    HealthResponse,
    MemoryUsage,
    MessageResponse,
)
from app.schemas.config import SettingsResponse, SettingsUpdateRequest
from app.services.backup_service import (
    BackupError,
    BackupKind,
    BackupNotFound,
    InvalidBackupFilename,
    RestoreUnsupportedError,
    validate_backup_filename,
)
from app.services.health_service import measure_system
from app.tasks.maintenance import apply_runtime_settings
from app.utils.audit import record_action

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_role("admin"))])


def _invalid_filename() -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid filename")


def _backup_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Backup not found")


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@router.get("/settings", response_model=SettingsResponse)
async def get_settings(config: ConfigSvc) -> SettingsResponse:
    """Current system settings (created with defaults on first read)."""
    return await config.get_settings()


@router.put("/settings", response_model=SettingsResponse)
async def update_settings(
    body: SettingsUpdateRequest,
    request: Request,
    config: ConfigSvc,
    cache: Cache,
    scheduler: Scheduler,
    db: DBSession,
    current_user: CurrentUser,
) -> SettingsResponse:
    """
    Partially update system settings.

    Changes take effect immediately: turning ``cacheService`` off flushes the
    response cache, and the backup schedule follows ``backup_frequency`` and
    the ``backupService`` toggle.
    """
    settings = await config.update_settings(body)
    await record_action(
        db,
        ACTION_UPDATE_SETTINGS,
        actor_id=current_user.id,
        resource="SystemSettings",
        details={"fields": sorted(body.model_fields_set)},
        request=request,
    )

    # Live cache and scheduler only follow settings that were actually stored
    await db.commit()
    apply_runtime_settings(settings, cache, scheduler)
    return settings


# ---------------------------------------------------------------------------
# Backups
# ---------------------------------------------------------------------------


@router.post(
    "/backup/trigger",
    response_model=BackupTriggerResponse,
    dependencies=[Depends(require_service(ServiceName.BACKUP_SERVICE))],
)
@limiter.limit("5/minute")
async def trigger_backup(
    request: Request,
    backups: BackupSvc,
    current_user: CurrentUser,
) -> BackupTriggerResponse:
    """Run a manual backup now (503 while the backup service is disabled)."""
    try:
        result = await backups.create_backup(BackupKind.MANUAL, actor_id=current_user.id)
    except (BackupError, OSError) as exc:
        logger.exception("Manual backup failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Backup failed",
        ) from exc

    return BackupTriggerResponse(
        msg="Backup created successfully",
        filename=result.filename,
        size=result.size,
        method=result.method.value,
        failed_collections=result.failed_collections,
    )


@router.get("/backups", response_model=list[BackupInfoResponse])
async def list_backups(backups: BackupSvc) -> list[BackupInfoResponse]:
    """Archives in the backups directory, newest first."""
    return [BackupInfoResponse.model_validate(b) for b in backups.list_backups()]


@router.get("/backup/download/{filename}", response_class=FileResponse)
async def download_backup(filename: str, backups: BackupSvc) -> FileResponse:
    try:
        path = backups.resolve_backup(filename)
    except InvalidBackupFilename as exc:
        raise _invalid_filename() from exc
    except BackupNotFound as exc:
        raise _backup_not_found() from exc

    return FileResponse(path, media_type="application/zip", filename=filename)


@router.delete("/backup/{filename}", response_model=MessageResponse)
async def delete_backup(
    filename: str,
    request: Request,
    backups: BackupSvc,
    db: DBSession,
    current_user: CurrentUser,
) -> MessageResponse:
    try:
        validate_backup_filename(filename)
    except InvalidBackupFilename as exc:
        raise _invalid_filename() from exc

    if not backups.delete_backup(filename):
        raise _backup_not_found()

    await record_action(
        db,
        ACTION_BACKUP_DELETED,
        actor_id=current_user.id,
        resource=filename,
        request=request,
    )
    return MessageResponse(msg="Backup deleted successfully")


@router.post(
    "/backup/restore/{filename}",
    status_code=status.HTTP_501_NOT_IMPLEMENTED,
    responses={400: {"description": "Invalid filename"}},
)
async def restore_backup(filename: str, backups: BackupSvc) -> None:
    """Not supported: archives must be restored manually."""
    try:
        await backups.restore_backup(filename)
    except InvalidBackupFilename as exc:
        raise _invalid_filename() from exc
    except RestoreUnsupportedError as exc:
        raise HTTPException(status_code=status.HTTP_501_NOT_IMPLEMENTED, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# Health, analytics and audit
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse)
async def system_health(request: Request, config: ConfigSvc) -> HealthResponse:
    """
    Sample host memory, CPU and disk usage and store the result.

    Status is ``warning`` above 80% memory use and ``critical`` above 95%.
    """
    started_at = getattr(request.app.state, "started_at", time.monotonic())
    snapshot = measure_system()
    if snapshot.status != "healthy":
        logger.warning(
            "Health check %s: memory at %.2f%%", snapshot.status, snapshot.memory_percent
        )

    settings = await config.record_health_check(snapshot.as_health())
    return HealthResponse(
        status=snapshot.status,
        uptime=int(time.monotonic() - started_at),
        memory=MemoryUsage(
            used=snapshot.memory_used,
            total=snapshot.memory_total,
            percentage=snapshot.memory_percent,
        ),
        services=settings.services,
        last_check=settings.last_health_check,
    )


@router.get("/analytics", response_model=AnalyticsResponse)
async def get_analytics(
    projects: ProjectRepo, sprints: SprintRepo, tasks: TaskRepo
) -> AnalyticsResponse:
    """Project, sprint and task totals across the whole platform."""
    total_projects = await projects.count()
    sprint_counts = await sprints.count_by_status()
    task_stats = await tasks.get_stats()

    by_status = task_stats["by_status"]
    completed = by_status.get(TaskStatus.COMPLETED, 0)
    total_tasks = task_stats["total"]

    return AnalyticsResponse(
        total_projects=total_projects,
        total_sprints=sum(sprint_counts.values()),
        total_tasks=total_tasks,
        tasks_by_status={s.value: by_status.get(s, 0) for s in TaskStatus},
        sprints_by_status={s.value: sprint_counts.get(s, 0) for s in SprintStatus},
        total_story_points=task_stats["story_points"],
        completion_rate=round(completed / total_tasks * 100) if total_tasks else 0,
    )


@router.get("/audit", response_model=list[AuditLogResponse])
async def list_audit_logs(repo: AuditRepo) -> list[AuditLogResponse]:
    """The most recent audit entries."""
    entries = await repo.list_recent(AUDIT_LIST_LIMIT)
    return [AuditLogResponse.model_validate(e) for e in entries]


@router.get("/alerts", response_model=AuditAlertsResponse)
async def list_audit_alerts(repo: AuditRepo) -> AuditAlertsResponse:
    """Critical actions (deletions, role changes, failures) from the last day."""
    since = datetime.now(UTC) - timedelta(hours=ALERT_WINDOW_HOURS)
    count = await repo.count_since(CRITICAL_AUDIT_ACTIONS, since)
    entries = await repo.list_since(CRITICAL_AUDIT_ACTIONS, since, limit=ALERT_FEED_LIMIT)
    return AuditAlertsResponse(
        count=count,
        alerts=[AuditLogResponse.model_validate(e) for e in entries],
    )
