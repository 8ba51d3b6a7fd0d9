"""Index commands."""

from pydantic import BaseModel, Field


class IndexCreate(BaseModel):
    name: str
    columns: list[str] = Field(default_factory=list)
    unique: bool = False
