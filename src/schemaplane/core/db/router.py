"""Tenant connection router.

Maps a project identity to a connection pool on that project's physical
database. The router is an explicit object handed to the services; there
is no module-level registry.
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from src.schemaplane.core.config import Settings, get_settings
from src.schemaplane.core.db.engine import get_connect_args
from src.schemaplane.core.db.session import get_public_session
from src.schemaplane.core.exceptions import RoutingError, translate_database_error
from src.schemaplane.core.logging import get_logger
from src.schemaplane.core.security import validate_database_name
from src.schemaplane.ddl import build_create_database, build_drop_database
from src.schemaplane.models.public import Project
from src.schemaplane.repositories.public.project import ProjectRepository

logger = get_logger(__name__)


class TenantConnectionRouter:
    """Registry of per-project connection pools.

    Pools are created lazily on first use and live until the project is
    deleted or the router is shut down. The control-plane engine is only
    used to look projects up and to run CREATE/DROP DATABASE; it is never
    handed out for a tenant operation.
    """

    def __init__(self, control_engine: AsyncEngine, settings: Settings | None = None):
        self._control_engine = control_engine
        self._settings = settings or get_settings()
        self._engines: dict[UUID, AsyncEngine] = {}
        self._retired: set[UUID] = set()
        self._lock = asyncio.Lock()
        self._admin_engine: AsyncEngine | None = None
        self._closed = False

        self._control_database = make_url(self._settings.database_url).database
        self._server_url = make_url(
            self._settings.tenant_database_url or self._settings.database_url
        )

    @property
    def pool_count(self) -> int:
        """Number of tenant pools currently open."""
        return len(self._engines)

    def _check_open(self) -> None:
        if self._closed:
            raise RoutingError("router.error.closed", "Tenant connection router is shut down")

    def _check_not_retired(self, project_id: UUID) -> None:
        if project_id in self._retired:
            raise RoutingError(
                "project.error.notFound",
                f"Project {project_id} has been deleted",
                operation="router.resolve",
                target=str(project_id),
            )

    async def _load_project(self, project_id: UUID) -> Project:
        async with get_public_session(self._control_engine) as session:
            return await ProjectRepository(session).get_by_id(project_id)

    def _validate_target(self, project: Project | None, project_id: UUID) -> Project:
        target = str(project_id)
        if project is None:
            raise RoutingError(
                "project.error.notFound",
                f"Project {project_id} does not exist",
                operation="router.resolve",
                target=target,
            )
        if not project.is_ready:
            raise RoutingError(
                "project.error.notProvisioned",
                f"Project {project_id} is not provisioned (status: {project.status})",
                operation="router.resolve",
                target=target,
            )
        if project.database_name == self._control_database:
            raise RoutingError(
                "project.error.controlPlane",
                "Project database resolves to the control-plane database",
                operation="router.resolve",
                target=target,
            )
        try:
            validate_database_name(project.database_name, self._settings.database_name_prefix)
        except ValueError as e:
            raise RoutingError(
                "project.error.invalidDatabase", str(e), operation="router.resolve", target=target
            ) from e
        return project

    def _create_tenant_engine(self, database_name: str) -> AsyncEngine:
        settings = self._settings
        return create_async_engine(
            self._server_url.set(database=database_name),
            pool_size=settings.tenant_pool_size,
            max_overflow=settings.tenant_max_overflow,
            pool_recycle=settings.tenant_pool_recycle_seconds,
            pool_pre_ping=True,
            connect_args=get_connect_args(settings, settings.tenant_statement_timeout_ms),
        )

    async def resolve(self, project_id: UUID) -> AsyncEngine:
        """Return the pool for a project's physical database.

        Raises:
            RoutingError: If the project does not exist, is not provisioned,
                has been retired, or points at the control-plane database.
        """
        self._check_open()
        self._check_not_retired(project_id)
        engine = self._engines.get(project_id)
        if engine is not None:
            return engine

        project = self._validate_target(await self._load_project(project_id), project_id)

        async with self._lock:
            self._check_open()
            # A delete may have run while the project was being loaded
            self._check_not_retired(project_id)
            engine = self._engines.get(project_id)
            if engine is None:
                engine = self._create_tenant_engine(project.database_name)
                self._engines[project_id] = engine
                logger.info(
                    "Tenant pool created",
                    project_id=str(project_id),
                    database_name=project.database_name,
                )
        return engine

    @asynccontextmanager
    async def connect(self, project_id: UUID) -> AsyncGenerator[AsyncConnection]:
        """Connection on the project's database, without an explicit transaction."""
        engine = await self.resolve(project_id)
        async with engine.connect() as connection:
            yield connection

    @asynccontextmanager
    async def begin(self, project_id: UUID) -> AsyncGenerator[AsyncConnection]:
        """Connection inside a transaction: committed on exit, rolled back on error."""
        engine = await self.resolve(project_id)
        async with engine.begin() as connection:
            yield connection

    async def dispose(self, project_id: UUID) -> bool:
        """Close the project's pool, if one is open."""
        async with self._lock:
            engine = self._engines.pop(project_id, None)
        if engine is None:
            return False
        await engine.dispose()
        logger.info("Tenant pool disposed", project_id=str(project_id))
        return True

    async def retire(self, project_id: UUID) -> None:
        """Close the project's pool and refuse to route to it from now on.

        Called before the project's database is dropped, so no request can
        re-open a pool on a database that is going away.
        """
        async with self._lock:
            self._retired.add(project_id)
            engine = self._engines.pop(project_id, None)
        if engine is not None:
            await engine.dispose()
        logger.info("Tenant pool retired", project_id=str(project_id))

    async def shutdown(self) -> None:
        """Close every tenant pool. The router refuses new work afterwards."""
        async with self._lock:
            self._closed = True
            engines = list(self._engines.items())
            self._engines.clear()

        for project_id, engine in engines:
            await engine.dispose()
            logger.debug("Tenant pool disposed", project_id=str(project_id))

        if self._admin_engine is not None:
            await self._admin_engine.dispose()
            self._admin_engine = None

        logger.info("Tenant connection router shut down", pools_closed=len(engines))

    # --- Provisioning ---

    def _get_admin_engine(self) -> AsyncEngine:
        """AUTOCOMMIT engine on the tenant server for CREATE/DROP DATABASE.

        Falls back to the control-plane engine when tenants share its server.
        """
        if self._settings.tenant_database_url is None:
            return self._control_engine.execution_options(isolation_level="AUTOCOMMIT")
        if self._admin_engine is None:
            self._admin_engine = create_async_engine(
                self._server_url,
                poolclass=NullPool,
                connect_args=get_connect_args(self._settings),
            )
        return self._admin_engine.execution_options(isolation_level="AUTOCOMMIT")

    async def database_exists(self, name: str) -> bool:
        async with self._get_admin_engine().connect() as connection:
            result = await connection.scalar(
                text("SELECT EXISTS(SELECT 1 FROM pg_database WHERE datname = :name)"),
                {"name": name},
            )
        return bool(result)

    async def create_database(self, name: str) -> None:
        """Create a physical database for a project.

        Raises:
            ValueError: If the name is not a valid generated database name
            ConflictError: If the database already exists
        """
        self._check_open()
        validate_database_name(name, self._settings.database_name_prefix)
        statement = build_create_database(name)

        logger.debug("Executing DDL", statement=statement)
        try:
            async with self._get_admin_engine().connect() as connection:
                await connection.exec_driver_sql(statement)
        except DBAPIError as e:
            raise translate_database_error(
                e, operation="router.create_database", target=name, entity="project"
            ) from e
        logger.info("Tenant database created", database_name=name)

    async def drop_database_if_exists(self, name: str) -> bool:
        """Drop a physical database, closing any pool that still points at it.

        Returns:
            True if the database existed and was dropped, False if already gone
        """
        validate_database_name(name, self._settings.database_name_prefix)

        async with self._lock:
            stale = [pid for pid, eng in self._engines.items() if eng.url.database == name]
            engines = [self._engines.pop(pid) for pid in stale]
        for engine in engines:
            await engine.dispose()

        existed = await self.database_exists(name)
        if not existed:
            logger.info("Tenant database already absent", database_name=name)
            return False

        statement = build_drop_database(name)
        logger.debug("Executing DDL", statement=statement)
        try:
            async with self._get_admin_engine().connect() as connection:
                await connection.exec_driver_sql(statement)
        except DBAPIError as e:
            raise translate_database_error(
                e, operation="router.drop_database", target=name, entity="project"
            ) from e
        logger.info("Tenant database dropped", database_name=name)
        return True
