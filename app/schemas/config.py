"""Pydantic schemas for the system settings singleton."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from app.models.settings import BackupFrequency, ServiceName


class SettingsResponse(BaseModel):
    """Response schema for system settings."""

    maintenance_mode: bool
    allow_registration: bool
    email_notifications: bool
    backup_frequency: BackupFrequency
    log_retention: int
    session_timeout: int
    max_file_upload_size: int
    rate_limiting: int
    cache_expiration: int
    services: dict[str, bool]
    last_backup_time: datetime | None = None
    last_health_check: datetime | None = None
    system_health: dict[str, Any] = Field(default_factory=dict)

    model_config = {"from_attributes": True}


class SettingsUpdateRequest(BaseModel):
    """Request schema for updating system settings (partial).

    ``services`` is merged into the stored toggles; keys not sent keep
    their current value.
    """

    maintenance_mode: bool | None = None
    allow_registration: bool | None = None
    email_notifications: bool | None = None
    backup_frequency: BackupFrequency | None = None
    log_retention: int | None = Field(None, ge=1, le=3650)
    session_timeout: int | None = Field(None, ge=1, le=1440)
    max_file_upload_size: int | None = Field(None, ge=1, le=1024)
    rate_limiting: int | None = Field(None, ge=1, le=100000)
    cache_expiration: int | None = Field(None, ge=1, le=720)
    services: dict[str, bool] | None = None

    @field_validator("services")
    @classmethod
    def validate_service_names(cls, v: dict[str, bool] | None) -> dict[str, bool] | None:
        """Reject toggles for services that do not exist."""
        if v is None:
            return v
        known = {s.value for s in ServiceName}
        unknown = sorted(set(v) - known)
        if unknown:
            raise ValueError(f"Unknown services: {unknown}. Must be among {sorted(known)}")
        return v
