"""PostgreSQL catalog queries (pg_catalog)."""

import re
from typing import Any

from utils.database_types import DatabaseType

from ..errors import CatalogError
from ..models import ColumnDescriptor
from .base import CatalogIntrospector

DEFAULT_SCHEMA = "public"

DESCRIBE_SQL = """
    SELECT a.attname AS column_name,
           pg_catalog.format_type(a.atttypid, a.atttypmod) AS column_type,
           NOT a.attnotnull AS is_nullable,
           pg_catalog.pg_get_expr(d.adbin, d.adrelid) AS column_default,
           a.attidentity AS identity,
           EXISTS (
               SELECT 1 FROM pg_catalog.pg_index i
               WHERE i.indrelid = c.oid AND i.indisprimary AND a.attnum = ANY(i.indkey)
           ) AS is_primary
    FROM pg_catalog.pg_attribute a
    JOIN pg_catalog.pg_class c ON c.oid = a.attrelid
    JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
    LEFT JOIN pg_catalog.pg_attrdef d ON d.adrelid = a.attrelid AND d.adnum = a.attnum
    WHERE n.nspname = %s AND c.relname = %s AND a.attnum > 0 AND NOT a.attisdropped
    ORDER BY a.attnum
"""

LIST_TABLES_SQL = """
    SELECT c.relname AS table_name
    FROM pg_catalog.pg_class c
    JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
    WHERE n.nspname = %s AND c.relkind IN ('r', 'p')
    ORDER BY c.relname
"""

CONSTRAINTS_SQL = """
    SELECT con.conname AS name, pg_catalog.pg_get_constraintdef(con.oid) AS definition
    FROM pg_catalog.pg_constraint con
    JOIN pg_catalog.pg_class c ON c.oid = con.conrelid
    JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
    WHERE n.nspname = %s AND c.relname = %s AND con.contype IN ('u', 'c', 'f', 'x')
    ORDER BY con.contype DESC, con.conname
"""

# Indexes that do not back a primary key, unique or exclusion constraint
INDEXES_SQL = """
    SELECT i.indexname AS name, i.indexdef AS definition
    FROM pg_catalog.pg_indexes i
    WHERE i.schemaname = %s AND i.tablename = %s
      AND NOT EXISTS (
          SELECT 1 FROM pg_catalog.pg_constraint con
          WHERE con.contype IN ('p', 'u', 'x')
            AND con.conindid = (quote_ident(i.schemaname) || '.' || quote_ident(i.indexname))::regclass
      )
    ORDER BY i.indexname
"""

_INDEX_NAME = re.compile(r'^(CREATE (?:UNIQUE )?INDEX) (?:"(?:[^"]|"")+"|\S+) ON ', re.IGNORECASE)

LIST_DATABASES_SQL = """
    SELECT datname FROM pg_catalog.pg_database
    WHERE NOT datistemplate
    ORDER BY datname
"""


class PostgresCatalog(CatalogIntrospector):
    """
    PostgreSQL introspection.

    The ``database`` argument of every operation names a schema; None means
    ``public``.
    """

    db_type = DatabaseType.POSTGRESQL

    def list_databases(self, include_system: bool = False) -> list[str]:
        names = [row["datname"] for row in self._run(LIST_DATABASES_SQL)]
        if include_system:
            return names
        return [name for name in names if name != "postgres"]

    def list_tables(self, database: str | None) -> list[str]:
        return [
            row["table_name"]
            for row in self._run(LIST_TABLES_SQL, (database or DEFAULT_SCHEMA,))
        ]

    def _describe_rows(self, database: str | None, table: str) -> list[dict[str, Any]]:
        return self._run(DESCRIBE_SQL, (database or DEFAULT_SCHEMA, table), table)

    def _to_descriptor(self, row: dict[str, Any]) -> ColumnDescriptor:
        default = row.get("column_default")
        identity = row.get("identity") or ""
        serial = bool(default) and default.startswith("nextval(")
        return ColumnDescriptor(
            name=row["column_name"],
            native_type=row["column_type"],
            nullable=bool(row["is_nullable"]),
            default_value=default,
            is_auto_increment=serial or identity in ("a", "d"),
            is_primary_key_member=bool(row.get("is_primary")),
            extra="identity" if identity in ("a", "d") else "",
        )

    def _render_column(self, col: ColumnDescriptor) -> str:
        parts = [self.builder.ident(col.name), col.native_type]
        if col.is_auto_increment:
            # Serial columns are rebuilt as identity columns
            parts.append("GENERATED BY DEFAULT AS IDENTITY")
        elif col.default_value is not None:
            parts.append(f"DEFAULT {col.default_value}")
        if not col.nullable:
            parts.append("NOT NULL")
        return " ".join(parts)

    def create_table_statement(self, database: str | None, table: str) -> str:
        """CREATE TABLE IF NOT EXISTS rebuilt from the column catalog."""
        columns = self.describe_table(database, table)
        lines = [f"    {self._render_column(col)}" for col in columns]
        key = [self.builder.ident(c.name) for c in columns if c.is_primary_key_member]
        if key:
            lines.append(f"    PRIMARY KEY ({', '.join(key)})")
        qualified = self.builder.table(database or DEFAULT_SCHEMA, table)
        return f"CREATE TABLE IF NOT EXISTS {qualified} (\n" + ",\n".join(lines) + "\n)"

    def column_definition(self, database: str | None, table: str, column: str) -> str:
        for col in self.describe_table(database, table):
            if col.name == column:
                return self._render_column(col).split(" ", 1)[1]
        raise CatalogError(f"Column {column} not found in {database or DEFAULT_SCHEMA}.{table}", table)

    def secondary_statements(self, database: str | None, table: str) -> list[str]:
        """
        Constraints and indexes beyond the primary key, as statements for a rebuilt table.

        Constraints and indexes are emitted unnamed so PostgreSQL picks names
        that do not collide with those still held by a backup of the table.

        Raises:
            CatalogError: If the catalog query fails
        """
        schema = database or DEFAULT_SCHEMA
        qualified = self.builder.table(schema, table)
        statements = [
            f"ALTER TABLE {qualified} ADD {row['definition']}"
            for row in self._run(CONSTRAINTS_SQL, (schema, table), table)
        ]
        for row in self._run(INDEXES_SQL, (schema, table), table):
            statements.append(_INDEX_NAME.sub(r"\1 ON ", row["definition"], count=1))
        return statements
