"""Identifier quoting for generated DDL.

Every identifier is quoted, never conditionally: quoting preserves the case
the caller validated and neutralises keywords. Content is validated upstream.
"""

from sqlalchemy.dialects import postgresql

_preparer = postgresql.dialect().identifier_preparer


def quote_identifier(name: str) -> str:
    """Double-quote an identifier, doubling any embedded quote."""
    return _preparer.quote_identifier(name)


def qualify(schema: str, name: str) -> str:
    """Render a schema-qualified identifier: ``"schema"."name"``."""
    return f"{quote_identifier(schema)}.{quote_identifier(name)}"


def dollar_quote_tag(body: str, base: str = "fn") -> str:
    """Pick a dollar-quote tag that does not occur inside ``body``."""
    tag = f"${base}$"
    counter = 0
    while tag in body:
        counter += 1
        tag = f"${base}{counter}$"
    return tag
