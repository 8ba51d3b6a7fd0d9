"""Service container.

Builds the control-plane engine, the tenant router and the services from
settings. The container owns every pool it creates; ``shutdown`` closes
them all.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine

from src.schemaplane.core.config import Settings, get_settings
from src.schemaplane.core.db.engine import create_control_engine
from src.schemaplane.core.db.router import TenantConnectionRouter
from src.schemaplane.core.logging import get_logger
from src.schemaplane.services import (
    ColumnService,
    FunctionService,
    IndexService,
    ProjectService,
    StatsService,
    TableService,
)

logger = get_logger(__name__)


@dataclass
class Container:
    settings: Settings
    control_engine: AsyncEngine
    router: TenantConnectionRouter
    projects: ProjectService
    tables: TableService
    columns: ColumnService
    indexes: IndexService
    functions: FunctionService
    stats: StatsService

    async def shutdown(self) -> None:
        """Close tenant pools first, then the control-plane engine."""
        logger.info("Closing connections...")
        await self.router.shutdown()
        await self.control_engine.dispose()
        logger.info("Shutdown complete")


def create_container(
    settings: Settings | None = None, control_engine: AsyncEngine | None = None
) -> Container:
    """Wire up the engine, router and services.

    Args:
        settings: Settings to use; defaults to the cached settings.
        control_engine: Optional engine override for testing.
    """
    settings = settings or get_settings()
    control_engine = control_engine or create_control_engine(settings)
    router = TenantConnectionRouter(control_engine, settings)

    return Container(
        settings=settings,
        control_engine=control_engine,
        router=router,
        projects=ProjectService(control_engine, router, settings),
        tables=TableService(router, settings),
        columns=ColumnService(router, settings),
        indexes=IndexService(router, settings),
        functions=FunctionService(router, settings),
        stats=StatsService(router, settings),
    )
