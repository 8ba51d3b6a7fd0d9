"""Project provisioning and teardown against a real server."""

from uuid import uuid4

import pytest

from src.schemaplane.core.db import get_public_session
from src.schemaplane.core.exceptions import NotFoundError, RoutingError
from src.schemaplane.models.base import utc_now
from src.schemaplane.models.public import Project, ProjectStatus
from src.schemaplane.repositories.public import ProjectRepository
from src.schemaplane.schemas import ProjectCreate, ProjectRename

pytestmark = pytest.mark.integration


async def test_create_and_delete_project(container):
    project = await container.projects.create(uuid4(), ProjectCreate(name="Lifecycle"))

    assert project.status == "ready"
    assert project.database_name.startswith(container.settings.database_name_prefix)
    assert await container.router.database_exists(project.database_name) is True

    await container.tables.list(project.id)
    assert container.router.pool_count == 1

    assert await container.projects.delete(project.id) is True

    assert await container.router.database_exists(project.database_name) is False
    assert container.router.pool_count == 0
    with pytest.raises(NotFoundError):
        await container.projects.get(project.id)
    with pytest.raises(RoutingError):
        await container.tables.list(project.id)


async def test_rename_keeps_database(container, project):
    renamed = await container.projects.rename(project.id, ProjectRename(name="Renamed"))

    assert renamed.name == "Renamed"
    assert renamed.database_name == project.database_name


async def test_listing_pages_through_projects_sharing_a_timestamp(container):
    organization_id = uuid4()
    created_at = utc_now()
    projects = [
        Project(
            organization_id=organization_id,
            name=f"Same instant {index}",
            database_name=container.projects.generate_database_name(),
            status=ProjectStatus.READY.value,
            created_at=created_at,
        )
        for index in range(3)
    ]
    async with get_public_session(container.control_engine) as session:
        session.add_all(projects)
        await session.commit()

    try:
        seen = []
        cursor = None
        while True:
            page = await container.projects.list_for_organization(
                organization_id, cursor=cursor, limit=1
            )
            seen += [project.id for project in page.items]
            if not page.has_more:
                break
            cursor = page.next_cursor

        assert sorted(seen) == sorted(project.id for project in projects)
    finally:
        async with get_public_session(container.control_engine) as session:
            repo = ProjectRepository(session)
            for project in projects:
                record = await repo.get_by_id(project.id)
                if record is not None:
                    await repo.delete(record)
            await session.commit()
