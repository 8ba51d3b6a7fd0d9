"""Command schemas and their mapping to catalog definitions."""

from src.schemaplane.schemas.column import (
    ColumnInput,
    ColumnRename,
    ColumnsAlter,
    ColumnsCreate,
    ColumnsDelete,
    ColumnTypeChange,
)
from src.schemaplane.schemas.function import FunctionCreate, FunctionParameterInput
from src.schemaplane.schemas.index import IndexCreate
from src.schemaplane.schemas.pagination import PaginatedResponse, decode_cursor, encode_cursor
from src.schemaplane.schemas.project import ProjectCreate, ProjectRename
from src.schemaplane.schemas.table import TableCreate, TableRename

__all__ = [
    # Columns
    "ColumnInput",
    "ColumnRename",
    "ColumnTypeChange",
    "ColumnsAlter",
    "ColumnsCreate",
    "ColumnsDelete",
    # Functions
    "FunctionCreate",
    "FunctionParameterInput",
    # Indexes
    "IndexCreate",
    # Pagination
    "PaginatedResponse",
    "decode_cursor",
    "encode_cursor",
    # Projects
    "ProjectCreate",
    "ProjectRename",
    # Tables
    "TableCreate",
    "TableRename",
]
