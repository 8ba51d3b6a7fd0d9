"""Column commands."""

from pydantic import BaseModel, Field


class ColumnInput(BaseModel):
    """One column of a create-table or add-columns command.

    Field content is checked by the identifier validator, not here, so a
    whole batch can be reported at once.
    """

    name: str
    type: str
    not_null: bool = False
    default: str | None = None
    primary: bool = False
    unique: bool = False
    foreign: bool = False
    reference_table: str | None = None
    reference_column: str | None = None


class ColumnsCreate(BaseModel):
    """Add several columns to a table in one transaction."""

    columns: list[ColumnInput] = Field(default_factory=list)


class ColumnTypeChange(BaseModel):
    name: str
    type: str


class ColumnsAlter(BaseModel):
    """Change the type of several existing columns in one transaction."""

    columns: list[ColumnTypeChange] = Field(default_factory=list)


class ColumnRename(BaseModel):
    name: str


class ColumnsDelete(BaseModel):
    names: list[str] = Field(default_factory=list)
