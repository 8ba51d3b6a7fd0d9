"""Explicit command-to-definition mapping, one function per operation.

Mapping copies fields verbatim; all content checks happen afterwards in
the validator, against the resulting definition.
"""

from src.schemaplane.models.catalog import (
    ColumnDefinition,
    FunctionDefinition,
    FunctionParameter,
    IndexDefinition,
    QualifiedName,
    TableDefinition,
)
from src.schemaplane.schemas.column import ColumnInput, ColumnsAlter, ColumnsCreate
from src.schemaplane.schemas.function import FunctionCreate
from src.schemaplane.schemas.index import IndexCreate
from src.schemaplane.schemas.table import TableCreate


def to_column_definition(column: ColumnInput, position: int) -> ColumnDefinition:
    return ColumnDefinition(
        name=column.name,
        type=column.type,
        position=position,
        not_null=column.not_null,
        primary=column.primary,
        unique=column.unique,
        foreign=column.foreign,
        default=column.default,
        reference_table=column.reference_table,
        reference_column=column.reference_column,
    )


def to_column_definitions(command: ColumnsCreate) -> list[ColumnDefinition]:
    """Positions are 1-based, in declaration order."""
    return [
        to_column_definition(column, position)
        for position, column in enumerate(command.columns, start=1)
    ]


def to_type_changes(command: ColumnsAlter) -> list[ColumnDefinition]:
    return [
        ColumnDefinition(name=change.name, type=change.type, position=position)
        for position, change in enumerate(command.columns, start=1)
    ]


def to_table_definition(command: TableCreate) -> TableDefinition:
    table = QualifiedName.parse(command.name)
    return TableDefinition(
        schema=table.schema,
        name=table.name,
        columns=[
            to_column_definition(column, position)
            for position, column in enumerate(command.columns, start=1)
        ],
    )


def to_index_definition(table: QualifiedName, command: IndexCreate) -> IndexDefinition:
    return IndexDefinition(
        schema=table.schema,
        table=table.name,
        name=command.name,
        columns=list(command.columns),
        unique=command.unique,
    )


def to_function_definition(schema: str, command: FunctionCreate) -> FunctionDefinition:
    return FunctionDefinition(
        schema=schema,
        name=command.name,
        parameters=[
            FunctionParameter(name=parameter.name, type=parameter.type)
            for parameter in command.parameters
        ],
        return_type=command.return_type,
        language=command.language,
        body=command.definition,
    )
