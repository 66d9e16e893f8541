"""
SQL literal rendering for previews and exported scripts.

Statements that are actually executed always bind their values as
parameters; the literals here are for SQL text a person reads or replays.
"""

from collections.abc import Mapping, Sequence
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

from reconciliation.values import Value, ValueKind, format_clock
from utils.database_types import DatabaseType
from utils.query_builder import QueryBuilder


def _quote(text: str, dialect: DatabaseType) -> str:
    escaped = text.replace("'", "''")
    if dialect == DatabaseType.MYSQL:
        escaped = escaped.replace("\\", "\\\\")
    return f"'{escaped}'"


def _non_finite(number: Decimal, dialect: DatabaseType) -> str:
    if dialect == DatabaseType.MYSQL:
        return "NULL"
    if number.is_nan():
        return "'NaN'"
    return "'Infinity'" if number > 0 else "'-Infinity'"


def encode_literal(value: Any, dialect: DatabaseType = DatabaseType.POSTGRESQL) -> str:
    """
    Render a value as a SQL literal.

    PostgreSQL: NULL, true/false, bare numbers, ``'\\x..'`` bytea,
    ISO-8601 timestamps and ``''``-escaped strings. MySQL uses 1/0 booleans,
    ``X'..'`` binary literals and also escapes backslashes.
    """
    value = Value.from_native(value)
    kind, payload = value.kind, value.payload

    if kind == ValueKind.NULL:
        return "NULL"
    if kind == ValueKind.BOOL:
        if dialect == DatabaseType.MYSQL:
            return "1" if payload else "0"
        return "true" if payload else "false"
    if kind == ValueKind.NUMBER:
        number = payload if isinstance(payload, Decimal) else Decimal(str(payload))
        if not number.is_finite():
            return _non_finite(number, dialect)
        return str(payload)
    if kind == ValueKind.BYTES:
        if dialect == DatabaseType.MYSQL:
            return f"X'{payload.hex()}'"
        return f"'\\x{payload.hex()}'"
    if kind == ValueKind.TIMESTAMP:
        if isinstance(payload, datetime):
            sep = " " if dialect == DatabaseType.MYSQL else "T"
            return f"'{payload.isoformat(sep=sep)}'"
        if isinstance(payload, date):
            return f"'{payload.isoformat()}'"
        if isinstance(payload, (time, timedelta)):
            return f"'{format_clock(payload)}'"
    return _quote(str(payload), dialect)


def render_insert(
    table: str,
    columns: Sequence[str],
    record: Mapping[str, Any],
    dialect: DatabaseType = DatabaseType.POSTGRESQL,
    schema: str | None = None,
) -> str:
    """
    A single INSERT statement with literal values.

    Columns missing from the record are rendered as NULL.
    """
    builder = QueryBuilder(dialect)
    column_list = ", ".join(builder.ident(c) for c in columns)
    values = ", ".join(encode_literal(record.get(c), dialect) for c in columns)
    return f"INSERT INTO {builder.table(schema, table)} ({column_list}) VALUES ({values})"


def to_pg_param(value: Value, target_type: str | None = None) -> Any:
    """
    Convert a tagged MySQL value into a psycopg2 parameter for ``target_type``.

    MySQL TIME values arrive as ``timedelta`` and are sent as clock text;
    binary payloads bound for non-BYTEA columns (``bit`` mapped to TEXT)
    are sent as hex text.
    """
    kind, payload = value.kind, value.payload

    if kind == ValueKind.NULL:
        return None
    if kind == ValueKind.BYTES:
        if target_type is not None and target_type != "BYTEA":
            return payload.hex()
        return payload
    if kind == ValueKind.TIMESTAMP and isinstance(payload, timedelta):
        return format_clock(payload)
    if kind == ValueKind.BOOL and target_type is not None and target_type != "BOOLEAN":
        return int(payload)
    return payload
