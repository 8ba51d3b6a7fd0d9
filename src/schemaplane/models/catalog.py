"""Catalog object definitions.

None of these are persisted by this service: they are built from caller
input on the way in and from the tenant database's system catalog on the
way out. The catalog is the single source of truth.
"""

from dataclasses import dataclass, field

from src.schemaplane.core.security.validators import split_qualified_name


@dataclass(frozen=True)
class QualifiedName:
    """A ``schema.name`` pair; schema defaults to ``public``."""

    schema: str
    name: str

    @classmethod
    def parse(cls, qualified: str) -> "QualifiedName":
        schema, name = split_qualified_name(qualified)
        return cls(schema=schema, name=name)

    def __str__(self) -> str:
        return f"{self.schema}.{self.name}"


@dataclass(frozen=True)
class ColumnDefinition:
    name: str
    type: str
    position: int = 0
    not_null: bool = False
    primary: bool = False
    unique: bool = False
    foreign: bool = False
    default: str | None = None
    reference_table: str | None = None
    reference_column: str | None = None
    # Catalog rendering (format_type), only set on introspected columns
    formatted_type: str | None = None


@dataclass(frozen=True)
class TableDefinition:
    schema: str
    name: str
    columns: list[ColumnDefinition] = field(default_factory=list)

    @property
    def qualified_name(self) -> QualifiedName:
        return QualifiedName(self.schema, self.name)


@dataclass(frozen=True)
class TableSummary:
    id: int
    schema: str
    name: str
    estimated_rows: int
    total_size: str


@dataclass(frozen=True)
class IndexDefinition:
    schema: str
    table: str
    name: str
    columns: list[str] = field(default_factory=list)
    unique: bool = False
    primary: bool = False
    # pg_get_indexdef rendering, for display only
    definition: str | None = None


@dataclass(frozen=True)
class FunctionParameter:
    name: str
    type: str


@dataclass(frozen=True)
class FunctionDefinition:
    schema: str
    name: str
    parameters: list[FunctionParameter] = field(default_factory=list)
    return_type: str = ""
    language: str = ""
    body: str = ""
    # pg_get_functiondef rendering, for display only
    definition: str | None = None


@dataclass(frozen=True)
class FunctionSummary:
    schema: str
    name: str
    return_type: str
    language: str
    sql_data_access: str | None = None


@dataclass(frozen=True)
class UnusedIndex:
    table_name: str
    index_name: str
    index_scans: int
    index_size: str


@dataclass(frozen=True)
class TableSize:
    table_name: str
    total_size: str


@dataclass(frozen=True)
class TableRowCount:
    table_name: str
    estimated_row_count: int


@dataclass(frozen=True)
class DatabaseStats:
    database_size: str
    index_size: str
    unused_indexes: list[UnusedIndex] = field(default_factory=list)
    table_sizes: list[TableSize] = field(default_factory=list)
    row_counts: list[TableRowCount] = field(default_factory=list)
