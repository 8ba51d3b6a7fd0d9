"""Database statistics from the cumulative statistics views."""

from typing import Final

from src.schemaplane.models.catalog import DatabaseStats, TableRowCount, TableSize, UnusedIndex
from src.schemaplane.repositories.catalog.base import CatalogRepository

UNUSED_INDEX_SCAN_THRESHOLD: Final[int] = 50

_SIZES = """
    SELECT
        pg_size_pretty(pg_database_size(current_database())) AS database_size,
        pg_size_pretty(COALESCE(sum(pg_relation_size(indexrelid)), 0)::bigint) AS index_size
    FROM pg_stat_user_indexes
"""

_UNUSED_INDEXES = """
    SELECT
        schemaname || '.' || relname AS table_name,
        indexrelname AS index_name,
        idx_scan AS index_scans,
        pg_size_pretty(pg_relation_size(indexrelid)) AS index_size
    FROM pg_stat_user_indexes
    WHERE idx_scan < :threshold
    ORDER BY pg_relation_size(indexrelid) DESC, indexrelname
"""

_TABLE_SIZES = """
    SELECT
        schemaname || '.' || relname AS table_name,
        pg_size_pretty(pg_total_relation_size(relid)) AS total_size
    FROM pg_statio_user_tables
    ORDER BY pg_total_relation_size(relid) DESC, relname
"""

_ROW_COUNTS = """
    SELECT
        schemaname || '.' || relname AS table_name,
        n_live_tup AS estimated_row_count
    FROM pg_stat_user_tables
    ORDER BY n_live_tup DESC, relname
"""


class StatsCatalog(CatalogRepository):
    """Size and usage statistics of one tenant database."""

    async def get_stats(self, threshold: int = UNUSED_INDEX_SCAN_THRESHOLD) -> DatabaseStats:
        sizes = await self._fetch_one(_SIZES)
        unused = await self._fetch_all(_UNUSED_INDEXES, {"threshold": threshold})
        table_sizes = await self._fetch_all(_TABLE_SIZES)
        row_counts = await self._fetch_all(_ROW_COUNTS)

        return DatabaseStats(
            database_size=sizes["database_size"] if sizes else "0 bytes",
            index_size=sizes["index_size"] if sizes else "0 bytes",
            unused_indexes=[
                UnusedIndex(
                    table_name=row["table_name"],
                    index_name=row["index_name"],
                    index_scans=row["index_scans"],
                    index_size=row["index_size"],
                )
                for row in unused
            ],
            table_sizes=[
                TableSize(table_name=row["table_name"], total_size=row["total_size"])
                for row in table_sizes
            ],
            row_counts=[
                TableRowCount(
                    table_name=row["table_name"], estimated_row_count=row["estimated_row_count"]
                )
                for row in row_counts
            ],
        )
