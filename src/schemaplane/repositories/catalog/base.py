"""Base class for catalog introspection."""

from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import RowMapping, text
from sqlalchemy.ext.asyncio import AsyncConnection


class CatalogRepository:
    """Read-only queries against a tenant database's system catalog.

    Catalog repositories wrap a caller-supplied connection, so they run
    inside whatever transaction the caller has open. They never cache:
    every call round-trips to the catalog.
    """

    def __init__(self, connection: AsyncConnection):
        self.connection = connection

    async def _fetch_all(
        self, sql: str, params: Mapping[str, Any] | None = None
    ) -> Sequence[RowMapping]:
        result = await self.connection.execute(text(sql), dict(params or {}))
        return result.mappings().all()

    async def _fetch_one(
        self, sql: str, params: Mapping[str, Any] | None = None
    ) -> RowMapping | None:
        result = await self.connection.execute(text(sql), dict(params or {}))
        return result.mappings().first()

    async def _scalar(self, sql: str, params: Mapping[str, Any] | None = None) -> Any:
        return await self.connection.scalar(text(sql), dict(params or {}))
