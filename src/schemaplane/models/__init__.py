"""Model exports.

Import from here: `from src.schemaplane.models import Project, TableDefinition`
"""

from src.schemaplane.models.catalog import (
    ColumnDefinition,
    DatabaseStats,
    FunctionDefinition,
    FunctionParameter,
    FunctionSummary,
    IndexDefinition,
    QualifiedName,
    TableDefinition,
    TableRowCount,
    TableSize,
    TableSummary,
    UnusedIndex,
)
from src.schemaplane.models.enums import ProjectStatus
from src.schemaplane.models.public import Project

__all__ = [
    # Enums
    "ProjectStatus",
    # Control-plane models
    "Project",
    # Catalog definitions (derived by introspection, never stored)
    "ColumnDefinition",
    "DatabaseStats",
    "FunctionDefinition",
    "FunctionParameter",
    "FunctionSummary",
    "IndexDefinition",
    "QualifiedName",
    "TableDefinition",
    "TableRowCount",
    "TableSize",
    "TableSummary",
    "UnusedIndex",
]
