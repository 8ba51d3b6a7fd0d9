"""Security utilities - identifier and type validators.

Re-exports all validators for convenience.
"""

from src.schemaplane.core.security.validators import (
    COLUMN_TYPES,
    CREATE_ONLY_TYPES,
    DEFAULT_SCHEMA,
    FUNCTION_LANGUAGES,
    FUNCTION_PARAMETER_TYPES,
    FUNCTION_RETURN_TYPES,
    IdentifierError,
    IdentifierKind,
    Rejection,
    RejectionReason,
    body_rejection,
    canonical_type,
    collect_column_rejections,
    collect_function_rejections,
    collect_index_rejections,
    collect_qualified_name_rejections,
    collect_table_rejections,
    default_rejection,
    identifier_rejection,
    split_qualified_name,
    type_rejection,
    validate_database_name,
    validate_identifier,
    validate_type,
)

__all__ = [
    # Vocabularies
    "COLUMN_TYPES",
    "CREATE_ONLY_TYPES",
    "DEFAULT_SCHEMA",
    "FUNCTION_LANGUAGES",
    "FUNCTION_PARAMETER_TYPES",
    "FUNCTION_RETURN_TYPES",
    # Types
    "IdentifierError",
    "IdentifierKind",
    "Rejection",
    "RejectionReason",
    # Single-value checks
    "body_rejection",
    "canonical_type",
    "default_rejection",
    "identifier_rejection",
    "split_qualified_name",
    "type_rejection",
    "validate_database_name",
    "validate_identifier",
    "validate_type",
    # Definition checks
    "collect_column_rejections",
    "collect_function_rejections",
    "collect_index_rejections",
    "collect_qualified_name_rejections",
    "collect_table_rejections",
]
