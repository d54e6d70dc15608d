"""Project database model."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDMixin


class Project(Base, UUIDMixin, TimestampMixin):
    """A student project tracked by a mentor."""

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Identities come from token claims, not a local users table
    owner_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    mentor_id: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)

    # Sprints are always queried explicitly; the FK cascade removes them
    sprints = relationship(
        "Sprint",
        back_populates="project",
        cascade="all, delete-orphan",
        lazy="raise",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Project {self.id}: {self.name}>"
