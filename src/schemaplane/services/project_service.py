"""Project lifecycle - the registry record and its physical database."""

from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from src.schemaplane.core.config import Settings, get_settings
from src.schemaplane.core.db.router import TenantConnectionRouter
from src.schemaplane.core.db.session import get_public_session
from src.schemaplane.core.exceptions import ConflictError, NotFoundError, SchemaValidationError
from src.schemaplane.core.logging import get_logger
from src.schemaplane.models.base import utc_now
from src.schemaplane.models.public import Project, ProjectStatus
from src.schemaplane.repositories.public import ProjectRepository
from src.schemaplane.schemas.pagination import PaginatedResponse
from src.schemaplane.schemas.project import ProjectCreate, ProjectRename

logger = get_logger(__name__)


class ProjectService:
    """Creates and destroys projects together with their databases.

    A project record and its physical database never outlive each other:
    a failed provisioning removes both before the error is re-raised.
    """

    def __init__(
        self,
        control_engine: AsyncEngine,
        router: TenantConnectionRouter,
        settings: Settings | None = None,
    ):
        self.control_engine = control_engine
        self.router = router
        self.settings = settings or get_settings()

    def generate_database_name(self) -> str:
        """Physical database name: the configured prefix plus a random hex id."""
        return f"{self.settings.database_name_prefix}{uuid4().hex}"

    async def create(self, organization_id: UUID, command: ProjectCreate) -> Project:
        """Register a project and provision its database.

        Returns:
            The project, in ``ready`` status

        Raises:
            ConflictError: The organization already has a project of that name
        """
        async with get_public_session(self.control_engine) as session:
            repo = ProjectRepository(session)
            if await repo.exists_by_name(organization_id, command.name):
                raise ConflictError(
                    "project.error.alreadyExists",
                    f"Project '{command.name}' already exists",
                    operation="project.create",
                    target=command.name,
                )

            project = Project(
                organization_id=organization_id,
                name=command.name,
                description=command.description,
                database_name=self.generate_database_name(),
                status=ProjectStatus.PROVISIONING.value,
            )
            try:
                repo.add(project)
                await session.commit()
                await session.refresh(project)
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(
                    "project.error.alreadyExists",
                    f"Project '{command.name}' already exists",
                    operation="project.create",
                    target=command.name,
                ) from e

        logger.info(
            "Provisioning project database",
            project_id=str(project.id),
            database_name=project.database_name,
        )

        database_created = False
        try:
            await self.router.create_database(project.database_name)
            database_created = True
            project = await self._set_status(project.id, ProjectStatus.READY)
        except Exception as e:
            logger.error(
                "Project provisioning failed, removing project",
                project_id=str(project.id),
                database_name=project.database_name,
                error=str(e),
            )
            await self._discard(project, drop_database=database_created)
            raise

        logger.info("Project ready", project_id=str(project.id))
        return project

    async def delete(self, project_id: UUID) -> bool:
        """Retire the project's pool, drop its database, then remove the record.

        Raises:
            NotFoundError: The project does not exist
        """
        project = await self.get(project_id)
        await self.router.retire(project_id)
        await self.router.drop_database_if_exists(project.database_name)

        async with get_public_session(self.control_engine) as session:
            repo = ProjectRepository(session)
            record = await repo.get_by_id(project_id)
            if record is not None:
                await repo.delete(record)
                await session.commit()

        logger.info(
            "Project deleted", project_id=str(project_id), database_name=project.database_name
        )
        return True

    async def get(self, project_id: UUID) -> Project:
        async with get_public_session(self.control_engine) as session:
            project = await ProjectRepository(session).get_by_id(project_id)
        if project is None:
            raise NotFoundError(
                "project.error.notFound",
                f"Project {project_id} does not exist",
                operation="project.get",
                target=str(project_id),
            )
        return project

    async def list_for_organization(
        self, organization_id: UUID, cursor: str | None = None, limit: int = 100
    ) -> PaginatedResponse[Project]:
        """List an organization's projects, newest first.

        Raises:
            SchemaValidationError: The cursor is malformed
        """
        async with get_public_session(self.control_engine) as session:
            try:
                items, next_cursor, has_more = await ProjectRepository(
                    session
                ).list_by_organization(organization_id, cursor, limit)
            except ValueError as e:
                raise SchemaValidationError(
                    "project.error.invalidCursor",
                    message="Invalid pagination cursor",
                    operation="project.list",
                    target=str(organization_id),
                ) from e
        return PaginatedResponse[Project](items=items, next_cursor=next_cursor, has_more=has_more)

    async def rename(self, project_id: UUID, command: ProjectRename) -> Project:
        """Rename a project. The physical database keeps its name."""
        async with get_public_session(self.control_engine) as session:
            repo = ProjectRepository(session)
            project = await repo.get_by_id(project_id)
            if project is None:
                raise NotFoundError(
                    "project.error.notFound",
                    f"Project {project_id} does not exist",
                    operation="project.rename",
                    target=str(project_id),
                )
            if project.name == command.name:
                return project

            conflict = ConflictError(
                "project.error.alreadyExists",
                f"Project '{command.name}' already exists",
                operation="project.rename",
                target=str(project_id),
            )
            if await repo.exists_by_name(project.organization_id, command.name):
                raise conflict

            try:
                project.name = command.name
                project.updated_at = utc_now()
                await session.commit()
                await session.refresh(project)
            except IntegrityError as e:
                await session.rollback()
                raise conflict from e
            return project

    async def _set_status(self, project_id: UUID, status: ProjectStatus) -> Project:
        async with get_public_session(self.control_engine) as session:
            project = await ProjectRepository(session).get_by_id(project_id)
            if project is None:
                raise NotFoundError(
                    "project.error.notFound",
                    f"Project {project_id} disappeared during provisioning",
                    operation="project.create",
                    target=str(project_id),
                )
            project.status = status.value
            project.updated_at = utc_now()
            await session.commit()
            await session.refresh(project)
            return project

    async def _discard(self, project: Project, *, drop_database: bool) -> None:
        """Undo a partial provisioning. Failures here are logged; the caller re-raises.

        When the database cannot be dropped, the record is kept and marked
        ``failed`` instead, so the orphaned database stays traceable and the
        project is never routed to.
        """
        if drop_database:
            try:
                await self.router.drop_database_if_exists(project.database_name)
            except Exception as e:
                logger.error(
                    "Failed to drop database after provisioning failure",
                    project_id=str(project.id),
                    database_name=project.database_name,
                    error=str(e),
                )
                try:
                    await self._set_status(project.id, ProjectStatus.FAILED)
                except Exception as status_error:
                    logger.error(
                        "Failed to mark project as failed",
                        project_id=str(project.id),
                        error=str(status_error),
                    )
                return

        try:
            async with get_public_session(self.control_engine) as session:
                repo = ProjectRepository(session)
                record = await repo.get_by_id(project.id)
                if record is not None:
                    await repo.delete(record)
                    await session.commit()
        except Exception as e:
            logger.error(
                "Failed to remove project after provisioning failure",
                project_id=str(project.id),
                database_name=project.database_name,
                error=str(e),
            )
