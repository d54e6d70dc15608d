"""Singleton system settings model."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import Boolean, DateTime, Integer
from sqlalchemy import Enum as SAEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin

# The settings table holds exactly one row with this primary key.
SETTINGS_ROW_ID = 1


class BackupFrequency(StrEnum):
    """How often the scheduled backup runs."""

    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ServiceName(StrEnum):
    """Feature toggles stored under ``SystemSettings.services``."""

    API_SERVER = "apiServer"
    DATABASE = "database"
    EMAIL_SERVICE = "emailService"
    GITHUB_INTEGRATION = "githubIntegration"
    FILE_STORAGE = "fileStorage"
    NOTIFICATION_SERVICE = "notificationService"
    CACHE_SERVICE = "cacheService"
    BACKUP_SERVICE = "backupService"


def default_services() -> dict[str, bool]:
    return {service.value: True for service in ServiceName}


def default_system_health() -> dict[str, Any]:
    return {"status": "healthy", "cpu_usage": 0, "memory_usage": 0, "disk_usage": 0}


class SystemSettings(Base, TimestampMixin):
    """Administrative settings and feature toggles (single row)."""

    __tablename__ = "system_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=SETTINGS_ROW_ID)

    maintenance_mode: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    allow_registration: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    email_notifications: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    backup_frequency: Mapped[str] = mapped_column(
        SAEnum(
            BackupFrequency,
            name="backup_frequency",
            create_constraint=True,
            native_enum=False,
            values_callable=lambda e: [member.value for member in e],
        ),
        default=BackupFrequency.DAILY.value,
        nullable=False,
    )

    # Numeric tuning fields (days, minutes, MB, requests/min, hours)
    log_retention: Mapped[int] = mapped_column(Integer, default=30, nullable=False)
    session_timeout: Mapped[int] = mapped_column(Integer, default=60, nullable=False)
    max_file_upload_size: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    rate_limiting: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    cache_expiration: Mapped[int] = mapped_column(Integer, default=24, nullable=False)

    services: Mapped[dict[str, bool]] = mapped_column(
        JSONB, default=default_services, nullable=False
    )

    last_backup_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_health_check: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    system_health: Mapped[dict[str, Any]] = mapped_column(
        JSONB, default=default_system_health, nullable=False
    )

    def is_service_enabled(self, service: str) -> bool:
        return bool((self.services or {}).get(service, False))

    def __repr__(self) -> str:
        return f"<SystemSettings backup={self.backup_frequency} services={self.services}>"
