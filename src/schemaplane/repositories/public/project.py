"""Repository for the Project registry."""

from uuid import UUID

from sqlmodel import select

from src.schemaplane.models.public import Project
from src.schemaplane.repositories.base import BaseRepository


class ProjectRepository(BaseRepository[Project]):
    """Repository for Project entity in the control-plane schema."""

    model = Project

    async def get_by_name(self, organization_id: UUID, name: str) -> Project | None:
        """Get a project by name within one organization."""
        result = await self.session.execute(
            select(Project).where(
                Project.organization_id == organization_id,
                Project.name == name,
            )
        )
        return result.scalar_one_or_none()

    async def exists_by_name(self, organization_id: UUID, name: str) -> bool:
        """Check if the organization already has a project with this name."""
        project = await self.get_by_name(organization_id, name)
        return project is not None

    async def list_by_organization(
        self, organization_id: UUID, cursor: str | None = None, limit: int = 100
    ) -> tuple[list[Project], str | None, bool]:
        """List an organization's projects with cursor-based pagination.

        Returns:
            Tuple of (items, next_cursor, has_more)

        Raises:
            ValueError: The cursor is malformed
        """
        query = select(Project).where(Project.organization_id == organization_id)
        return await self.paginate(query, cursor, limit, Project.created_at)
