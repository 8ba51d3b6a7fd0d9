"""Integration test fixtures for the control plane and tenant databases.

These fixtures require a PostgreSQL server reachable at DATABASE_URL with
a role allowed to create databases. Tests are skipped when it is not.
"""

from collections.abc import AsyncGenerator
from uuid import uuid4

import pytest
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from src.schemaplane.core.config import get_settings
from src.schemaplane.core.container import Container, create_container
from src.schemaplane.core.db import get_connect_args
from src.schemaplane.core.exceptions import NotFoundError
from src.schemaplane.core.migrations import run_migrations_async
from src.schemaplane.models.public import Project
from src.schemaplane.schemas import ProjectCreate


@pytest.fixture(scope="function")
async def engine() -> AsyncGenerator[AsyncEngine]:
    """Control-plane engine with migrations applied."""
    settings = get_settings()
    test_engine = create_async_engine(
        settings.database_url, poolclass=NullPool, connect_args=get_connect_args(settings)
    )

    try:
        async with test_engine.connect() as connection:
            await connection.execute(text("SELECT 1"))
    except (OSError, DBAPIError) as e:
        await test_engine.dispose()
        pytest.skip(f"PostgreSQL not reachable at DATABASE_URL: {e}")

    await run_migrations_async()

    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def container(engine: AsyncEngine) -> AsyncGenerator[Container]:
    """Services wired to the test control plane; every pool is closed afterwards."""
    services = create_container(get_settings(), control_engine=engine)
    yield services
    await services.shutdown()


async def _provision(container: Container) -> Project:
    return await container.projects.create(
        uuid4(), ProjectCreate(name=f"Test Project {uuid4().hex[-8:]}")
    )


async def _teardown(container: Container, project: Project) -> None:
    try:
        await container.projects.delete(project.id)
    except NotFoundError:
        pass


@pytest.fixture
async def project(container: Container) -> AsyncGenerator[Project]:
    """A provisioned project with its own empty database."""
    created = await _provision(container)
    yield created
    await _teardown(container, created)


@pytest.fixture
async def other_project(container: Container) -> AsyncGenerator[Project]:
    """A second provisioned project, for isolation tests."""
    created = await _provision(container)
    yield created
    await _teardown(container, created)
