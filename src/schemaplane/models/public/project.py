"""Project model - registry in the control-plane database."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from src.schemaplane.core.security.validators import MAX_DATABASE_NAME_LENGTH
from src.schemaplane.models.base import utc_now
from src.schemaplane.models.enums import ProjectStatus


class Project(SQLModel, table=True):
    """Project registry in the control plane.

    Each project owns exactly one physical database, named by
    ``database_name``; the two are created and dropped together.
    """

    __tablename__ = "projects"
    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_projects_organization_name"),
        {"schema": "public"},
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    organization_id: UUID = Field(index=True)
    name: str = Field(max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    database_name: str = Field(max_length=MAX_DATABASE_NAME_LENGTH, unique=True)
    status: str = Field(default=ProjectStatus.PROVISIONING.value)
    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_ready(self) -> bool:
        """Check if the physical database has been provisioned."""
        return self.status == ProjectStatus.READY.value
