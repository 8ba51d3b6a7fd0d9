"""Database statistics service."""

from uuid import UUID

from src.schemaplane.models.catalog import DatabaseStats
from src.schemaplane.repositories.catalog import UNUSED_INDEX_SCAN_THRESHOLD, StatsCatalog
from src.schemaplane.services.base import SchemaService


class StatsService(SchemaService):
    entity = "database"

    async def get(
        self,
        project_id: UUID,
        *,
        unused_index_threshold: int = UNUSED_INDEX_SCAN_THRESHOLD,
        timeout: float | None = None,
    ) -> DatabaseStats:
        """Size, index usage and row estimates of a project's database.

        Args:
            project_id: Project whose database is inspected.
            unused_index_threshold: Indexes scanned fewer times than this
                are reported as unused.
            timeout: Deadline in seconds.
        """
        return await self._read(
            project_id,
            "stats.get",
            str(project_id),
            lambda connection: StatsCatalog(connection).get_stats(unused_index_threshold),
            timeout=timeout,
        )
