"""MySQL catalog queries (information_schema and SHOW CREATE TABLE)."""

import re
from typing import Any

from utils.database_types import DatabaseType

from ..errors import CatalogError, TableMissingError
from ..models import ColumnDescriptor
from .base import CatalogIntrospector

SYSTEM_SCHEMAS = frozenset({"mysql", "information_schema", "performance_schema", "sys"})

_CREATE_TABLE_PREFIX = re.compile(r"^\s*CREATE\s+TABLE\s+(IF\s+NOT\s+EXISTS\s+)?`[^`]+`", re.IGNORECASE)

# Defaults that are SQL expressions rather than literal values
_EXPRESSION_DEFAULT = re.compile(r"^(CURRENT_TIMESTAMP|CURRENT_DATE|CURRENT_TIME|NOW|LOCALTIME|LOCALTIMESTAMP)\b", re.IGNORECASE)
_NUMERIC_DEFAULT = re.compile(r"^-?\d+(\.\d+)?$")

DESCRIBE_SQL = """
    SELECT COLUMN_NAME AS column_name, COLUMN_TYPE AS column_type,
           IS_NULLABLE AS is_nullable, COLUMN_DEFAULT AS column_default,
           EXTRA AS extra, COLUMN_KEY AS column_key
    FROM INFORMATION_SCHEMA.COLUMNS
    WHERE TABLE_SCHEMA = COALESCE(%s, DATABASE()) AND TABLE_NAME = %s
    ORDER BY ORDINAL_POSITION
"""

LIST_TABLES_SQL = """
    SELECT TABLE_NAME AS table_name
    FROM INFORMATION_SCHEMA.TABLES
    WHERE TABLE_SCHEMA = COALESCE(%s, DATABASE()) AND TABLE_TYPE = 'BASE TABLE'
    ORDER BY TABLE_NAME
"""


def split_default(default: str | None) -> tuple[str | None, bool]:
    """
    Undo MariaDB's COLUMN_DEFAULT encoding.

    MariaDB reports a missing default as the text NULL and wraps string
    literals in single quotes; MySQL does neither.

    Returns:
        The default value (None when there is none) and whether it was a
        quoted string literal
    """
    if default is None or default.strip().upper() == "NULL":
        return None, False
    if len(default) >= 2 and default.startswith("'") and default.endswith("'"):
        return default[1:-1].replace("''", "'"), True
    return default, False


def format_default(default: str | None, extra: str) -> str | None:
    """Render an information_schema COLUMN_DEFAULT as DDL text."""
    default, quoted = split_default(default)
    if default is None:
        return None
    if not quoted:
        if _EXPRESSION_DEFAULT.match(default) or _NUMERIC_DEFAULT.match(default):
            return default
        if "DEFAULT_GENERATED" in extra.upper():
            return f"({default})"
    escaped = default.replace("\\", "\\\\").replace("'", "''")
    return f"'{escaped}'"


class MySQLCatalog(CatalogIntrospector):
    db_type = DatabaseType.MYSQL

    def list_databases(self, include_system: bool = False) -> list[str]:
        names = [row["Database"] for row in self._run("SHOW DATABASES")]
        if include_system:
            return names
        return [name for name in names if name.lower() not in SYSTEM_SCHEMAS]

    def list_tables(self, database: str | None) -> list[str]:
        return [row["table_name"] for row in self._run(LIST_TABLES_SQL, (database,))]

    def _describe_rows(self, database: str | None, table: str) -> list[dict[str, Any]]:
        return self._run(DESCRIBE_SQL, (database, table), table)

    def _to_descriptor(self, row: dict[str, Any]) -> ColumnDescriptor:
        extra = row.get("extra") or ""
        return ColumnDescriptor(
            name=row["column_name"],
            native_type=row["column_type"],
            nullable=row["is_nullable"] == "YES",
            default_value=row["column_default"],
            is_auto_increment="auto_increment" in extra.lower(),
            is_primary_key_member=row.get("column_key") == "PRI",
            extra=extra,
        )

    def create_table_statement(self, database: str | None, table: str) -> str:
        """
        ``SHOW CREATE TABLE`` output, made idempotent and qualified with ``database``.
        """
        qualified = self.builder.table(database, table)
        rows = self._run(f"SHOW CREATE TABLE {qualified}", table=table)
        if not rows:
            raise TableMissingError(f"No DDL returned for table {table}", table)

        ddl = rows[0].get("Create Table")
        if not ddl:
            raise CatalogError(f"{table} is not a base table", table)

        rewritten, count = _CREATE_TABLE_PREFIX.subn(
            f"CREATE TABLE IF NOT EXISTS {qualified}", ddl, count=1
        )
        if not count:
            raise CatalogError(f"Unexpected DDL for {table}: {ddl[:60]!r}", table)
        return rewritten

    def column_definition(self, database: str | None, table: str, column: str) -> str:
        """Type, nullability, default and extra of one column, for ADD COLUMN."""
        for col in self.describe_table(database, table):
            if col.name != column:
                continue
            definition = col.native_type
            if not col.nullable:
                definition += " NOT NULL"
            default = format_default(col.default_value, col.extra)
            if default is not None:
                definition += f" DEFAULT {default}"
            extra = " ".join(
                token for token in col.extra.split() if token.upper() != "DEFAULT_GENERATED"
            )
            if extra:
                definition += f" {extra}"
            return definition
        raise CatalogError(f"Column {column} not found in {database}.{table}", table)
