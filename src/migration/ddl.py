"""
PostgreSQL CREATE TABLE generation from MySQL column descriptors.
"""

import re
from collections.abc import Sequence

from reconciliation.catalog.mysql import split_default
from reconciliation.models import ColumnDescriptor
from utils.database_types import DatabaseType
from utils.query_builder import QueryBuilder

from .models import MappedColumn
from .type_mapping import NUMERIC_TARGETS, map_mysql_type, sized_type

_PG = QueryBuilder(DatabaseType.POSTGRESQL)

_EXPRESSION_KEYWORDS = re.compile(
    r"^\s*(CURRENT_TIMESTAMP|CURRENT_DATE|CURRENT_TIME|NOW|LOCALTIME|LOCALTIMESTAMP|UUID)\b",
    re.IGNORECASE,
)
_NUMBER = re.compile(r"^-?\d+(\.\d+)?([eE][-+]?\d+)?$")


def is_expression_default(column: ColumnDescriptor) -> bool:
    """True for defaults evaluated by MySQL rather than stored as a value."""
    default, quoted = split_default(column.default_value)
    if default is None or quoted:
        return False
    return (
        "(" in default
        or "DEFAULT_GENERATED" in column.extra.upper()
        or bool(_EXPRESSION_KEYWORDS.match(default))
    )


def render_default(column: ColumnDescriptor, target_type: str) -> str | None:
    """
    PostgreSQL DEFAULT clause value for a plain MySQL default, or None.

    Expression defaults are dropped; numbers stay bare for numeric targets
    and everything else becomes a quoted string literal.
    """
    default, _ = split_default(column.default_value)
    if default is None or is_expression_default(column):
        return None
    if target_type in NUMERIC_TARGETS and _NUMBER.match(default.strip()):
        return default.strip()
    if target_type == "BOOLEAN" and default.strip() in ("0", "1"):
        return "true" if default.strip() == "1" else "false"
    return "'" + default.replace("'", "''") + "'"


def map_columns(columns: Sequence[ColumnDescriptor]) -> list[MappedColumn]:
    return [
        MappedColumn(name=c.name, source_type=c.native_type, target_type=sized_type(c.native_type))
        for c in columns
    ]


def build_create_table(
    table: str,
    columns: Sequence[ColumnDescriptor],
    schema: str | None = None,
) -> str:
    """
    Build the PostgreSQL CREATE TABLE statement for a MySQL table.

    A sole auto-increment primary key becomes BIGSERIAL (BIGINT sources) or
    SERIAL; any other sole key is declared inline; a composite key becomes a
    table-level PRIMARY KEY constraint.

    Raises:
        ValueError: If there are no columns or an identifier is invalid
    """
    if not columns:
        raise ValueError(f"No columns found for table {table}")

    key_members = [c for c in columns if c.is_primary_key_member]
    sole_key = key_members[0].name if len(key_members) == 1 else None

    definitions = []
    for column in columns:
        name = _PG.ident(column.name)
        target = sized_type(column.native_type)

        if column.name == sole_key:
            if column.is_auto_increment:
                serial = "BIGSERIAL" if map_mysql_type(column.native_type) == "BIGINT" else "SERIAL"
                definitions.append(f"{name} {serial} PRIMARY KEY")
            else:
                definitions.append(f"{name} {target} PRIMARY KEY")
            continue

        parts = [name, target]
        if not column.nullable or column.is_primary_key_member:
            parts.append("NOT NULL")
        default = render_default(column, map_mysql_type(column.native_type))
        if default is not None:
            parts.append(f"DEFAULT {default}")
        definitions.append(" ".join(parts))

    if len(key_members) > 1:
        definitions.append(
            f"PRIMARY KEY ({', '.join(_PG.ident(c.name) for c in key_members)})"
        )

    return f"CREATE TABLE {_PG.table(schema, table)} ({', '.join(definitions)})"
