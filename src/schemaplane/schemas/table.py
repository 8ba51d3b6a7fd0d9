"""Table commands."""

from pydantic import BaseModel, Field

from src.schemaplane.schemas.column import ColumnInput


class TableCreate(BaseModel):
    """Create a table.

    ``name`` may be schema-qualified (``schema.table``); the schema
    defaults to ``public``.
    """

    name: str
    columns: list[ColumnInput] = Field(default_factory=list)


class TableRename(BaseModel):
    """New name for a rename or duplicate; the table stays in its schema."""

    name: str
