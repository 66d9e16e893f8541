"""
SQL safety utilities for preventing SQL injection.

Provides identifier validation and quoting functions for safe SQL query construction.
Values are never interpolated; only validated identifiers pass through here.
"""

import re

from .database_types import DatabaseType


# Strict ASCII-only pattern for SQL identifiers. MySQL allows a leading digit
# and '$' in unquoted names, so both are accepted.
VALID_IDENTIFIER = re.compile(r"^[A-Za-z0-9_$]+$")


def validate_identifier(
    identifier: str, db_type: DatabaseType | None = None
) -> None:
    """
    Validate a SQL identifier (table name, column name, schema name).

    Args:
        identifier: The identifier to validate
        db_type: Engine whose length limit applies (None = no length check)

    Raises:
        ValueError: If the identifier is empty, too long, or contains invalid characters
    """
    if not identifier:
        raise ValueError("SQL identifier cannot be empty")

    if not isinstance(identifier, str) or not VALID_IDENTIFIER.match(identifier):
        raise ValueError(
            f"Invalid SQL identifier: {identifier!r}. "
            "Only ASCII letters, digits, underscores and '$' are allowed."
        )

    if db_type is not None and len(identifier) > db_type.identifier_limit:
        raise ValueError(
            f"Invalid SQL identifier: {identifier!r}. "
            f"Longer than {db_type.identifier_limit} characters."
        )


def quote_identifier(identifier: str, db_type: DatabaseType) -> str:
    """
    Safely quote a SQL identifier after validation.

    Args:
        identifier: The identifier to quote (table name, column name, etc.)
        db_type: Engine for proper quoting style

    Returns:
        Quoted identifier safe for use in SQL

    Raises:
        ValueError: If the identifier is invalid
    """
    validate_identifier(identifier, db_type)
    quote = db_type.quote_char()
    return f"{quote}{identifier}{quote}"


def quote_qualified(schema: str | None, name: str, db_type: DatabaseType) -> str:
    """
    Safely quote a schema-qualified name.

    Args:
        schema: Database (MySQL) or schema (PostgreSQL) name, or None for unqualified
        name: Table name
        db_type: Engine for proper quoting style

    Returns:
        Quoted identifier such as `shop`.`orders` or "public"."orders"
    """
    if schema:
        return f"{quote_identifier(schema, db_type)}.{quote_identifier(name, db_type)}"
    return quote_identifier(name, db_type)


def backup_table_name(
    table: str, timestamp_ms: int, db_type: DatabaseType, suffix: str = "backup"
) -> str:
    """
    Build a timestamped backup name that fits the engine's identifier limit.

    The table part is truncated so that '<table>_<suffix>_<timestamp>' never
    exceeds the limit; the timestamp is always preserved.
    """
    validate_identifier(table)
    tail = f"_{suffix}_{timestamp_ms}"
    budget = db_type.identifier_limit - len(tail)
    if budget < 1:
        raise ValueError(f"Backup suffix too long for {db_type.value}: {tail!r}")
    name = f"{table[:budget]}{tail}"
    validate_identifier(name, db_type)
    return name
