"""initial_project_tracker_schema

Revision ID: a7c41e9d2b10
Revises:
Create Date: 2026-10-19 09:00:00.000000

Creates projects, sprints, tasks, audit_logs and the system_settings
singleton, and seeds the settings row with every service enabled.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a7c41e9d2b10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_SERVICES = (
    "apiServer",
    "database",
    "emailService",
    "githubIntegration",
    "fileStorage",
    "notificationService",
    "cacheService",
    "backupService",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("owner_id", sa.String(100), nullable=False),
        sa.Column("mentor_id", sa.String(100), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_projects_owner_id", "projects", ["owner_id"])
    op.create_index("ix_projects_mentor_id", "projects", ["mentor_id"])

    op.create_table(
        "sprints",
        sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("goal", sa.Text(), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "Planned",
                "Active",
                "Completed",
                name="sprint_status",
                native_enum=False,
                create_constraint=True,
            ),
            nullable=False,
            server_default="Planned",
        ),
        *_timestamps(),
    )
    op.create_index("idx_sprint_project_start", "sprints", ["project_id", "start_date"])

    op.create_table(
        "tasks",
        sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "sprint_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("sprints.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "Pending",
                "In Progress",
                "Completed",
                name="task_status",
                native_enum=False,
                create_constraint=True,
            ),
            nullable=False,
            server_default="Pending",
        ),
        sa.Column("story_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verified_by", sa.String(100), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_tasks_project_id", "tasks", ["project_id"])
    op.create_index("idx_task_sprint_verified", "tasks", ["sprint_id", "is_verified"])

    op.create_table(
        "audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column("actor_id", sa.String(100), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("resource", sa.String(500), nullable=True),
        sa.Column(
            "details",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("idx_audit_action_created", "audit_logs", ["action", "created_at"])

    op.create_table(
        "system_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("maintenance_mode", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("allow_registration", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("email_notifications", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "backup_frequency",
            sa.Enum(
                "hourly",
                "daily",
                "weekly",
                "monthly",
                name="backup_frequency",
                native_enum=False,
                create_constraint=True,
            ),
            nullable=False,
            server_default="daily",
        ),
        sa.Column("log_retention", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("session_timeout", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("max_file_upload_size", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("rate_limiting", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("cache_expiration", sa.Integer(), nullable=False, server_default="24"),
        sa.Column("services", postgresql.JSONB(), nullable=False),
        sa.Column("last_backup_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_health_check", sa.DateTime(timezone=True), nullable=True),
        sa.Column("system_health", postgresql.JSONB(), nullable=False),
        *_timestamps(),
    )

    # Seed the singleton row
    settings_table = sa.table(
        "system_settings",
        sa.column("id", sa.Integer()),
        sa.column("services", postgresql.JSONB()),
        sa.column("system_health", postgresql.JSONB()),
    )
    op.bulk_insert(
        settings_table,
        [
            {
                "id": 1,
                "services": {name: True for name in _SERVICES},
                "system_health": {
                    "status": "healthy",
                    "cpu_usage": 0,
                    "memory_usage": 0,
                    "disk_usage": 0,
                },
            }
        ],
    )


def downgrade() -> None:
    op.drop_table("system_settings")
    op.drop_index("idx_audit_action_created", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("idx_task_sprint_verified", table_name="tasks")
    op.drop_index("ix_tasks_project_id", table_name="tasks")
    op.drop_table("tasks")
    op.drop_index("idx_sprint_project_start", table_name="sprints")
    op.drop_table("sprints")
    op.drop_index("ix_projects_mentor_id", table_name="projects")
    op.drop_index("ix_projects_owner_id", table_name="projects")
    op.drop_table("projects")
