"""Identifier, type and definition validators.

DDL identifiers cannot be bound as query parameters, so every name, type and
default expression must pass through this module before it reaches the DDL
builder. All functions here are pure: no I/O, no side effects.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Final

if TYPE_CHECKING:
    from src.schemaplane.models.catalog import (
        ColumnDefinition,
        FunctionDefinition,
        IndexDefinition,
        TableDefinition,
    )

MAX_DATABASE_NAME_LENGTH: Final[int] = 63  # PostgreSQL identifier limit
DEFAULT_SCHEMA: Final[str] = "public"


class IdentifierKind(str, Enum):
    """Kinds of identifiers, each with its own length bounds and reserved set."""

    SCHEMA = "schema"
    TABLE = "table"
    COLUMN = "column"
    INDEX = "index"
    FUNCTION = "function"
    FUNCTION_PARAM = "function-param"


class RejectionReason(str, Enum):
    """Why a proposed name, type or definition was rejected."""

    EMPTY = "empty"
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"
    INVALID_PATTERN = "invalid_pattern"
    RESERVED = "reserved"
    TYPE_NOT_ALLOWED = "type_not_allowed"
    LANGUAGE_NOT_ALLOWED = "language_not_allowed"
    INVALID_DEFAULT = "invalid_default"
    UNPAIRED_BODY = "unpaired_body"
    DUPLICATE = "duplicate"
    MISSING_REFERENCE = "missing_reference"
    EMPTY_BATCH = "empty_batch"


@dataclass(frozen=True)
class Rejection:
    """A single validation failure.

    ``field`` locates the failing value inside a structured definition, e.g.
    ``columns[1].name``, so a whole batch can be reported at once.
    """

    reason: RejectionReason
    message: str
    value: str = ""
    field: str = ""

    def at(self, field: str) -> "Rejection":
        """Return a copy located at ``field``."""
        return Rejection(self.reason, self.message, self.value, field)

    def to_dict(self) -> dict[str, Any]:
        return {
            "reason": self.reason.value,
            "message": self.message,
            "value": self.value,
            "field": self.field,
        }


class IdentifierError(ValueError):
    """Raised by the ``validate_*`` helpers; carries the rejection."""

    def __init__(self, rejection: Rejection):
        self.rejection = rejection
        super().__init__(rejection.message)


@dataclass(frozen=True)
class IdentifierRule:
    min_length: int
    max_length: int
    pattern: re.Pattern[str]
    pattern_message: str
    reserved: frozenset[str] = frozenset()


_LETTER_START = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")

IDENTIFIER_RULES: Final[dict[IdentifierKind, IdentifierRule]] = {
    IdentifierKind.SCHEMA: IdentifierRule(
        min_length=1,
        max_length=60,
        pattern=re.compile(r"^(?!pg_)[a-z_][a-z0-9_]*$"),
        pattern_message=(
            "must start with a lowercase letter or underscore, contain only lowercase "
            "letters, digits and underscores, and not start with 'pg_'"
        ),
        reserved=frozenset({"information_schema", "pg_catalog", "pg_toast"}),
    ),
    IdentifierKind.TABLE: IdentifierRule(
        min_length=3,
        max_length=60,
        pattern=re.compile(r"^[A-Za-z0-9_-]+$"),
        pattern_message="must contain only letters, digits, underscores and dashes",
        reserved=frozenset({"pg_catalog", "information_schema"}),
    ),
    IdentifierKind.COLUMN: IdentifierRule(
        min_length=2,
        max_length=60,
        pattern=_LETTER_START,
        pattern_message=(
            "must start with a letter or underscore and contain only letters, digits, "
            "underscores and dashes"
        ),
        reserved=frozenset({"oid", "xmin", "cmin", "xmax", "cmax", "tableoid"}),
    ),
    IdentifierKind.INDEX: IdentifierRule(
        min_length=3,
        max_length=60,
        pattern=re.compile(r"^[A-Za-z0-9_]+$"),
        pattern_message="must contain only letters, digits and underscores",
        reserved=frozenset({"primary", "unique", "foreign", "exclude"}),
    ),
    IdentifierKind.FUNCTION: IdentifierRule(
        min_length=3,
        max_length=60,
        pattern=_LETTER_START,
        pattern_message=(
            "must start with a letter or underscore and contain only letters, digits, "
            "underscores and dashes"
        ),
    ),
    IdentifierKind.FUNCTION_PARAM: IdentifierRule(
        min_length=1,
        max_length=60,
        pattern=_LETTER_START,
        pattern_message=(
            "must start with a letter or underscore and contain only letters, digits, "
            "underscores and dashes"
        ),
    ),
}

# Closed column type vocabulary, mapped to the SQL rendered by the builder.
# Never a pass-through to the PostgreSQL type system.
COLUMN_TYPES: Final[dict[str, str]] = {
    "int": "integer",
    "serial": "serial",
    "varchar": "varchar",
    "text": "text",
    "boolean": "boolean",
    "date": "date",
    "timestamp": "timestamp",
    "float": "double precision",
    "uuid": "uuid",
    "json": "json",
}

# Pseudo-types that only exist in CREATE TABLE / ADD COLUMN; ALTER ... TYPE
# cannot target them.
CREATE_ONLY_TYPES: Final[frozenset[str]] = frozenset({"serial"})

_FUNCTION_VALUE_TYPES: Final[frozenset[str]] = frozenset(
    {
        "integer",
        "bigint",
        "smallint",
        "text",
        "varchar",
        "char",
        "boolean",
        "real",
        "double precision",
        "numeric",
        "json",
        "jsonb",
        "uuid",
        "timestamp",
        "timestamptz",
        "date",
        "time",
        "bytea",
    }
)
FUNCTION_RETURN_TYPES: Final[frozenset[str]] = _FUNCTION_VALUE_TYPES | {"void", "record", "trigger"}
FUNCTION_PARAMETER_TYPES: Final[frozenset[str]] = _FUNCTION_VALUE_TYPES | (
    frozenset(COLUMN_TYPES) - CREATE_ONLY_TYPES
)
FUNCTION_LANGUAGES: Final[frozenset[str]] = frozenset({"plpgsql", "sql"})

_NUMERIC_LITERAL = re.compile(r"^-?\d+(\.\d+)?$")
_STRING_LITERAL = re.compile(r"^'(?:[^']|'')*'$")
_CAST_LITERAL = re.compile(r"^('(?:[^']|'')*')::([a-z ]+)$")
_KEYWORD_LITERALS: Final[frozenset[str]] = frozenset({"true", "false", "null"})
DEFAULT_FUNCTIONS: Final[frozenset[str]] = frozenset(
    {
        "now()",
        "current_timestamp",
        "current_date",
        "current_time",
        "localtimestamp",
        "gen_random_uuid()",
        "uuid_generate_v4()",
    }
)

_BEGIN = re.compile(r"\bBEGIN\b", re.IGNORECASE)
_END = re.compile(r"\bEND\b", re.IGNORECASE)
_BEGIN_ATOMIC = re.compile(r"^\s*BEGIN\s+ATOMIC\b", re.IGNORECASE)
_END_AT_TAIL = re.compile(r"\bEND\s*;?\s*$", re.IGNORECASE)
_DOLLAR_TAG = re.compile(r"\$(?:[A-Za-z_][A-Za-z0-9_]*)?\$")

_DATABASE_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-z][a-z0-9_]*$")


def identifier_rejection(name: str, kind: IdentifierKind) -> Rejection | None:
    """Check a proposed identifier; return the first failing rule or None.

    Rules, in order: non-empty, length within the kind's bounds, allowed
    pattern, not in the kind's reserved set.
    """
    rule = IDENTIFIER_RULES[kind]
    label = kind.value.replace("-", " ").capitalize()

    if not name:
        return Rejection(RejectionReason.EMPTY, f"{label} name is required", name)
    if len(name) < rule.min_length:
        return Rejection(
            RejectionReason.TOO_SHORT,
            f"{label} name must be between {rule.min_length} and {rule.max_length} characters",
            name,
        )
    if len(name) > rule.max_length:
        return Rejection(
            RejectionReason.TOO_LONG,
            f"{label} name must be between {rule.min_length} and {rule.max_length} characters",
            name,
        )
    if not rule.pattern.match(name):
        return Rejection(
            RejectionReason.INVALID_PATTERN, f"{label} name {rule.pattern_message}", name
        )
    if name.lower() in rule.reserved:
        return Rejection(
            RejectionReason.RESERVED,
            f"{label} name '{name}' is reserved and cannot be used",
            name,
        )
    return None


def validate_identifier(name: str, kind: IdentifierKind) -> str:
    """Validate an identifier, raising IdentifierError on the first failure."""
    rejection = identifier_rejection(name, kind)
    if rejection is not None:
        raise IdentifierError(rejection)
    return name


def type_rejection(type_name: str) -> Rejection | None:
    """Check a column type against the closed vocabulary."""
    if not type_name:
        return Rejection(RejectionReason.EMPTY, "Column type is required", type_name)
    if type_name.lower() not in COLUMN_TYPES:
        return Rejection(
            RejectionReason.TYPE_NOT_ALLOWED,
            f"column type '{type_name}' is not allowed",
            type_name,
        )
    return None


def validate_type(type_name: str) -> str:
    """Validate a column type, returning its canonical (lowercase) spelling."""
    rejection = type_rejection(type_name)
    if rejection is not None:
        raise IdentifierError(rejection)
    return type_name.lower()


def canonical_type(type_name: str) -> str:
    """SQL rendering of an allowed column type."""
    return COLUMN_TYPES[validate_type(type_name)]


def default_rejection(expression: str) -> Rejection | None:
    """Check a column default against the closed default-expression grammar.

    Accepted: numeric literals, single-quoted string literals (quotes doubled),
    ``true``/``false``/``null``, a small set of zero-argument functions, and a
    string literal cast to an allowed column type.
    """
    candidate = expression.strip()
    lowered = candidate.lower()
    if (
        _NUMERIC_LITERAL.match(candidate)
        or _STRING_LITERAL.match(candidate)
        or lowered in _KEYWORD_LITERALS
        or lowered in DEFAULT_FUNCTIONS
    ):
        return None

    cast = _CAST_LITERAL.match(candidate)
    if cast is not None:
        target = cast.group(2).strip().lower()
        if target in COLUMN_TYPES or target in COLUMN_TYPES.values():
            return None

    return Rejection(
        RejectionReason.INVALID_DEFAULT,
        f"default expression '{expression}' is not allowed",
        expression,
    )


def _is_balanced(body: str) -> bool:
    """Quotes and parentheses pair up outside comments and dollar-quoted spans."""
    depth = 0
    i = 0
    while i < len(body):
        char = body[i]
        if char in ("'", '"'):
            end = body.find(char, i + 1)
            if end == -1:
                return False
            i = end + 1
            continue
        if body.startswith("--", i):
            end = body.find("\n", i)
            if end == -1:
                break
            i = end + 1
            continue
        if body.startswith("/*", i):
            end = body.find("*/", i + 2)
            if end == -1:
                return False
            i = end + 2
            continue
        # "$" inside an identifier such as foo$bar does not open a quote
        if char == "$" and (i == 0 or not (body[i - 1].isalnum() or body[i - 1] == "_")):
            tag = _DOLLAR_TAG.match(body, i)
            if tag is not None:
                end = body.find(tag.group(), tag.end())
                if end == -1:
                    return False
                i = end + len(tag.group())
                continue
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return False
        i += 1
    return depth == 0


def body_rejection(body: str, language: str) -> Rejection | None:
    """Check that a function body is syntactically paired for its language.

    Deep SQL correctness is left to PostgreSQL; this only ensures quotes and
    parentheses balance and the language's block markers are present. Comments
    and dollar-quoted spans are skipped by the balance check.
    """
    if not body or not body.strip():
        return Rejection(RejectionReason.EMPTY, "Function definition is required", body)

    if not _is_balanced(body):
        return Rejection(
            RejectionReason.UNPAIRED_BODY,
            "invalid definition: unbalanced quotes or parentheses",
            body,
        )

    language = language.lower()
    if language == "plpgsql":
        begin = _BEGIN.search(body)
        ends = list(_END.finditer(body))
        if begin is None or not ends or ends[-1].start() < begin.start():
            return Rejection(
                RejectionReason.UNPAIRED_BODY,
                "invalid definition: plpgsql body must be enclosed in BEGIN ... END",
                body,
            )
    elif language == "sql" and _BEGIN_ATOMIC.match(body) and not _END_AT_TAIL.search(body):
        return Rejection(
            RejectionReason.UNPAIRED_BODY,
            "invalid definition: BEGIN ATOMIC block must be closed with END",
            body,
        )
    return None


def split_qualified_name(qualified: str) -> tuple[str, str]:
    """Split ``schema.table`` into its parts; schema defaults to ``public``.

    More than one dot leaves the remainder in the name part so that the
    identifier rules reject it.
    """
    if "." not in qualified:
        return DEFAULT_SCHEMA, qualified
    schema, _, name = qualified.partition(".")
    return schema, name


def _located(rejection: Rejection | None, field: str) -> list[Rejection]:
    return [] if rejection is None else [rejection.at(field)]


def collect_qualified_name_rejections(
    schema: str, name: str, kind: IdentifierKind, field: str = "name"
) -> list[Rejection]:
    """Validate the schema and object parts of a qualified name."""
    return _located(identifier_rejection(schema, IdentifierKind.SCHEMA), "schema") + _located(
        identifier_rejection(name, kind), field
    )


def collect_column_rejections(
    columns: Sequence["ColumnDefinition"], *, check_attributes: bool = True
) -> list[Rejection]:
    """Validate a batch of columns, reporting every failure with its position.

    Args:
        columns: Column definitions in declaration order.
        check_attributes: Also validate defaults and foreign references
            (off for type-only alterations, which instead refuse
            ``CREATE_ONLY_TYPES``).
    """
    if not columns:
        return [
            Rejection(RejectionReason.EMPTY_BATCH, "At least one column is required", "", "columns")
        ]

    rejections: list[Rejection] = []
    seen: set[str] = set()
    for position, column in enumerate(columns):
        prefix = f"columns[{position}]"
        rejections += _located(
            identifier_rejection(column.name, IdentifierKind.COLUMN), f"{prefix}.name"
        )
        rejections += _located(type_rejection(column.type), f"{prefix}.type")

        key = column.name.lower()
        if key and key in seen:
            rejections.append(
                Rejection(
                    RejectionReason.DUPLICATE,
                    f"Duplicate column '{column.name}' in definition",
                    column.name,
                    f"{prefix}.name",
                )
            )
        seen.add(key)

        if not check_attributes:
            if column.type.lower() in CREATE_ONLY_TYPES:
                rejections.append(
                    Rejection(
                        RejectionReason.TYPE_NOT_ALLOWED,
                        f"column type '{column.type}' can only be used when adding a column",
                        column.type,
                        f"{prefix}.type",
                    )
                )
            continue

        if column.default is not None:
            rejections += _located(default_rejection(column.default), f"{prefix}.default")

        if column.foreign:
            if not column.reference_table or not column.reference_column:
                rejections.append(
                    Rejection(
                        RejectionReason.MISSING_REFERENCE,
                        "reference table and column are required for foreign key constraints",
                        column.name,
                        f"{prefix}.foreign",
                    )
                )
            else:
                ref_schema, ref_table = split_qualified_name(column.reference_table)
                rejections += _located(
                    identifier_rejection(ref_schema, IdentifierKind.SCHEMA),
                    f"{prefix}.reference_table",
                )
                rejections += _located(
                    identifier_rejection(ref_table, IdentifierKind.TABLE),
                    f"{prefix}.reference_table",
                )
                rejections += _located(
                    identifier_rejection(column.reference_column, IdentifierKind.COLUMN),
                    f"{prefix}.reference_column",
                )
    return rejections


def collect_table_rejections(definition: "TableDefinition") -> list[Rejection]:
    """Validate a full table definition: qualified name plus its columns."""
    return collect_qualified_name_rejections(
        definition.schema, definition.name, IdentifierKind.TABLE
    ) + collect_column_rejections(definition.columns)


def collect_index_rejections(definition: "IndexDefinition") -> list[Rejection]:
    """Validate an index name and its column list."""
    rejections = _located(identifier_rejection(definition.name, IdentifierKind.INDEX), "name")
    if not definition.columns:
        rejections.append(
            Rejection(
                RejectionReason.EMPTY_BATCH, "At least one column is required", "", "columns"
            )
        )
        return rejections

    seen: set[str] = set()
    for position, column in enumerate(definition.columns):
        field = f"columns[{position}]"
        if not column.strip():
            rejections.append(
                Rejection(
                    RejectionReason.EMPTY, "Column name in index cannot be empty", column, field
                )
            )
            continue
        rejections += _located(identifier_rejection(column, IdentifierKind.COLUMN), field)
        if column.lower() in seen:
            rejections.append(
                Rejection(
                    RejectionReason.DUPLICATE,
                    f"Duplicate column '{column}' in index definition",
                    column,
                    field,
                )
            )
        seen.add(column.lower())
    return rejections


def collect_function_rejections(definition: "FunctionDefinition") -> list[Rejection]:
    """Validate a function's name, signature, language and body pairing."""
    rejections = collect_qualified_name_rejections(
        definition.schema, definition.name, IdentifierKind.FUNCTION
    )

    seen: set[str] = set()
    for position, parameter in enumerate(definition.parameters):
        prefix = f"parameters[{position}]"
        rejections += _located(
            identifier_rejection(parameter.name, IdentifierKind.FUNCTION_PARAM), f"{prefix}.name"
        )
        if parameter.type.lower() not in FUNCTION_PARAMETER_TYPES:
            rejections.append(
                Rejection(
                    RejectionReason.TYPE_NOT_ALLOWED,
                    f"invalid parameter type: {parameter.type}",
                    parameter.type,
                    f"{prefix}.type",
                )
            )
        if parameter.name.lower() in seen:
            rejections.append(
                Rejection(
                    RejectionReason.DUPLICATE,
                    f"Duplicate parameter '{parameter.name}'",
                    parameter.name,
                    f"{prefix}.name",
                )
            )
        seen.add(parameter.name.lower())

    if not definition.return_type:
        rejections.append(
            Rejection(RejectionReason.EMPTY, "return_type is required", "", "return_type")
        )
    elif definition.return_type.lower() not in FUNCTION_RETURN_TYPES:
        rejections.append(
            Rejection(
                RejectionReason.TYPE_NOT_ALLOWED,
                f"invalid return type: {definition.return_type}",
                definition.return_type,
                "return_type",
            )
        )

    if not definition.language:
        rejections.append(Rejection(RejectionReason.EMPTY, "language is required", "", "language"))
        return rejections
    if definition.language.lower() not in FUNCTION_LANGUAGES:
        rejections.append(
            Rejection(
                RejectionReason.LANGUAGE_NOT_ALLOWED,
                f"invalid language: {definition.language}",
                definition.language,
                "language",
            )
        )
        return rejections

    rejections += _located(body_rejection(definition.body, definition.language), "definition")
    return rejections


def validate_database_name(name: str, prefix: str = "udb_") -> None:
    """Validate a physical database name before it is interpolated into DDL.

    Database names are generated, never user-supplied, but CREATE/DROP
    DATABASE cannot be parameterised so they are checked all the same.

    Raises:
        ValueError: If the name is invalid
    """
    if len(name) > MAX_DATABASE_NAME_LENGTH:
        raise ValueError(
            f"Database name exceeds PostgreSQL limit: {len(name)} > {MAX_DATABASE_NAME_LENGTH}"
        )
    if not name.startswith(prefix) or not _DATABASE_NAME_PATTERN.match(name):
        raise ValueError(
            f"Invalid database name format: {name}. "
            f"Must be '{prefix}' followed by lowercase alphanumeric characters."
        )

    forbidden = ["pg_", "template", "postgres", "--", ";", "/*", "*/"]
    if any(pattern in name.lower() for pattern in forbidden):
        raise ValueError(f"Database name contains forbidden pattern: {name}")
