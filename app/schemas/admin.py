"""Pydantic schemas for the admin console."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class BackupTriggerResponse(BaseModel):
    """Result of a manual backup run."""

    msg: str
    filename: str
    size: int
    method: str
    failed_collections: list[str] = []


class BackupInfoResponse(BaseModel):
    """One archive in the backups directory."""

    filename: str
    size: int
    created_at: datetime

    model_config = {"from_attributes": True}


class MessageResponse(BaseModel):
    msg: str


class AuditLogResponse(BaseModel):
    """Schema for an audit log entry."""

    id: str
    actor_id: str | None
    action: str
    resource: str | None
    details: dict[str, Any]
    ip_address: str | None
    user_agent: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class AuditAlertsResponse(BaseModel):
    """Critical audit actions seen in the last 24 hours."""

    count: int
    alerts: list[AuditLogResponse]


class MemoryUsage(BaseModel):
    """Memory figures in megabytes."""

    used: int
    total: int
    percentage: float


class HealthResponse(BaseModel):
    """Admin health probe result."""

    status: str
    uptime: int
    memory: MemoryUsage
    services: dict[str, bool]
    last_check: datetime | None


class AnalyticsResponse(BaseModel):
    """Platform-wide totals for the admin dashboard."""

    total_projects: int
    total_sprints: int
    total_tasks: int
    tasks_by_status: dict[str, int]
    sprints_by_status: dict[str, int]
    total_story_points: int
    completion_rate: int
