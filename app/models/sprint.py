"""Sprint database model."""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDMixin


class SprintStatus(StrEnum):
    """Sprint lifecycle status."""

    PLANNED = "Planned"
    ACTIVE = "Active"
    COMPLETED = "Completed"


class Sprint(Base, UUIDMixin, TimestampMixin):
    """Time-boxed iteration within a project."""

    __tablename__ = "sprints"

    project_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    goal: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        SAEnum(
            SprintStatus,
            name="sprint_status",
            create_constraint=True,
            native_enum=False,
            values_callable=lambda e: [member.value for member in e],
        ),
        default=SprintStatus.PLANNED.value,
        nullable=False,
    )

    project = relationship("Project", back_populates="sprints", lazy="raise")

    __table_args__ = (Index("idx_sprint_project_start", "project_id", "start_date"),)

    def __repr__(self) -> str:
        return f"<Sprint {self.id}: {self.name} ({self.status})>"
