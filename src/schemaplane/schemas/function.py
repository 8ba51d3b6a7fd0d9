"""Function commands."""

from pydantic import BaseModel, Field


class FunctionParameterInput(BaseModel):
    name: str
    type: str


class FunctionCreate(BaseModel):
    """Create (or replace, via update) a function.

    ``definition`` is the body placed between the dollar quotes, e.g.
    ``BEGIN RETURN a + b; END``.
    """

    name: str
    parameters: list[FunctionParameterInput] = Field(default_factory=list)
    definition: str
    language: str
    return_type: str
