"""Pagination schemas for cursor-based pagination."""

import base64
from datetime import datetime
from typing import Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """Generic page of results with an opaque continuation cursor.

    Clients should treat the cursor as an opaque token and pass it back
    unchanged to get the next page.
    """

    items: list[T]
    next_cursor: str | None = Field(
        default=None,
        description="Opaque cursor for fetching the next page. None if no more pages.",
    )
    has_more: bool = Field(
        default=False,
        description="Whether there are more items after this page.",
    )


def encode_cursor(position: datetime, last_id: UUID) -> str:
    """Encode the sort key of the last row on a page."""
    return base64.urlsafe_b64encode(f"{position.isoformat()}|{last_id}".encode()).decode()


def decode_cursor(cursor: str) -> tuple[datetime, UUID]:
    """Decode a cursor produced by ``encode_cursor``.

    Raises:
        ValueError: If cursor is invalid
    """
    try:
        raw = base64.urlsafe_b64decode(cursor.encode()).decode()
        position, separator, last_id = raw.partition("|")
        if not separator:
            raise ValueError("missing separator")
        return datetime.fromisoformat(position), UUID(last_id)
    except ValueError as e:
        raise ValueError("Invalid cursor") from e
