"""Base repository for control-plane models."""

from typing import Any
from uuid import UUID

from sqlalchemy import tuple_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from src.schemaplane.schemas.pagination import decode_cursor, encode_cursor


class BaseRepository[ModelType: SQLModel]:
    """Base repository providing common database operations.

    Repositories handle data access only. Transaction control (commit)
    is done in the service layer.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: UUID) -> ModelType | None:
        """Get a record by its primary key."""
        result = await self.session.execute(
            select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        )
        return result.scalar_one_or_none()

    def add(self, entity: ModelType) -> None:
        """Add entity to session (no flush/commit)."""
        self.session.add(entity)

    async def delete(self, entity: ModelType) -> None:
        """Mark entity for deletion (no commit)."""
        await self.session.delete(entity)

    async def paginate(
        self,
        query: Any,
        cursor: str | None,
        limit: int,
        order_field: Any,
    ) -> tuple[list[ModelType], str | None, bool]:
        """Keyset pagination on ``(order_field, id)``, newest first.

        The primary key breaks ties, so rows sharing an ``order_field``
        value are neither skipped nor repeated across a page boundary.

        Args:
            query: The base query to paginate
            cursor: Optional cursor from previous page
            limit: Maximum number of items to return
            order_field: Timestamp column used for ordering

        Returns:
            Tuple of (items, next_cursor, has_more)

        Raises:
            ValueError: The cursor was not produced by this method
        """
        id_field = self.model.id  # type: ignore[attr-defined]
        if cursor:
            position, last_id = decode_cursor(cursor)
            query = query.where(tuple_(order_field, id_field) < tuple_(position, last_id))

        query = query.order_by(order_field.desc(), id_field.desc()).limit(limit + 1)

        result = await self.session.execute(query)
        items = list(result.scalars().all())

        has_more = len(items) > limit
        if has_more:
            items = items[:limit]

        next_cursor = None
        if has_more and items:
            last = items[-1]
            next_cursor = encode_cursor(getattr(last, order_field.key), last.id)

        return items, next_cursor, has_more
