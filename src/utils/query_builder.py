"""
Dialect-aware SQL statement construction.

Identifiers are interpolated only through :func:`utils.sql_safety.quote_identifier`;
every data value travels as a bound parameter in ``Statement.params``.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from .database_types import DatabaseType
from .sql_safety import quote_identifier, quote_qualified


@dataclass(frozen=True)
class Statement:
    """A SQL string plus the parameters to bind to it."""

    sql: str
    params: tuple[Any, ...] = field(default_factory=tuple)


class QueryBuilder:
    """Builds parameterized statements for one engine family."""

    def __init__(self, db_type: DatabaseType):
        self.db_type = db_type

    def ident(self, identifier: str) -> str:
        return quote_identifier(identifier, self.db_type)

    def table(self, schema: str | None, table: str) -> str:
        return quote_qualified(schema, table, self.db_type)

    def _placeholders(self, count: int) -> str:
        return ", ".join([self.db_type.get_placeholder()] * count)

    def select_all(
        self, schema: str | None, table: str, columns: Sequence[str] | None = None
    ) -> Statement:
        cols = ", ".join(self.ident(c) for c in columns) if columns else "*"
        return Statement(f"SELECT {cols} FROM {self.table(schema, table)}")

    def count_rows(self, schema: str | None, table: str) -> Statement:
        return Statement(
            f"SELECT COUNT(*) AS row_count FROM {self.table(schema, table)}"
        )

    def insert_sql(self, schema: str | None, table: str, columns: Sequence[str]) -> str:
        """INSERT text without values, for use with execute_many."""
        if not columns:
            raise ValueError("INSERT requires at least one column")
        quoted_cols = ", ".join(self.ident(c) for c in columns)
        return (
            f"INSERT INTO {self.table(schema, table)} ({quoted_cols}) "
            f"VALUES ({self._placeholders(len(columns))})"
        )

    def insert(
        self,
        schema: str | None,
        table: str,
        columns: Sequence[str],
        values: Sequence[Any],
    ) -> Statement:
        if len(columns) != len(values):
            raise ValueError(
                f"Column/value count mismatch: {len(columns)} columns, {len(values)} values"
            )
        return Statement(self.insert_sql(schema, table, columns), tuple(values))

    def upsert(
        self,
        schema: str | None,
        table: str,
        columns: Sequence[str],
        primary_key: str,
        values: Sequence[Any],
    ) -> Statement:
        """
        Insert-or-update keyed by the primary key.

        MySQL: INSERT ... ON DUPLICATE KEY UPDATE col = VALUES(col)
        PostgreSQL: INSERT ... ON CONFLICT (pk) DO UPDATE SET col = EXCLUDED.col
        """
        if primary_key not in columns:
            raise ValueError(f"Primary key {primary_key!r} missing from upsert columns")

        base = self.insert(schema, table, columns, values)
        non_key = [c for c in columns if c != primary_key]

        if self.db_type == DatabaseType.MYSQL:
            if non_key:
                assignments = ", ".join(
                    f"{self.ident(c)} = VALUES({self.ident(c)})" for c in non_key
                )
            else:
                pk = self.ident(primary_key)
                assignments = f"{pk} = {pk}"
            sql = f"{base.sql} ON DUPLICATE KEY UPDATE {assignments}"
        else:
            conflict = f"ON CONFLICT ({self.ident(primary_key)})"
            if non_key:
                assignments = ", ".join(
                    f"{self.ident(c)} = EXCLUDED.{self.ident(c)}" for c in non_key
                )
                sql = f"{base.sql} {conflict} DO UPDATE SET {assignments}"
            else:
                sql = f"{base.sql} {conflict} DO NOTHING"

        return Statement(sql, base.params)

    def delete_by_key(
        self, schema: str | None, table: str, primary_key: str, key_value: Any
    ) -> Statement:
        return Statement(
            f"DELETE FROM {self.table(schema, table)} "
            f"WHERE {self.ident(primary_key)} = {self.db_type.get_placeholder()}",
            (key_value,),
        )

    def rename_table(self, schema: str | None, old_name: str, new_name: str) -> Statement:
        if self.db_type == DatabaseType.MYSQL:
            return Statement(
                f"RENAME TABLE {self.table(schema, old_name)} "
                f"TO {self.table(schema, new_name)}"
            )
        return Statement(
            f"ALTER TABLE {self.table(schema, old_name)} RENAME TO {self.ident(new_name)}"
        )

    def add_column(
        self, schema: str | None, table: str, column: str, definition: str
    ) -> Statement:
        """
        ALTER TABLE ... ADD COLUMN.

        ``definition`` is catalog-derived DDL text (type, nullability, default),
        never caller-supplied data.
        """
        if not definition or ";" in definition:
            raise ValueError(f"Invalid column definition for {column!r}: {definition!r}")
        return Statement(
            f"ALTER TABLE {self.table(schema, table)} "
            f"ADD COLUMN {self.ident(column)} {definition}"
        )

    def drop_table_if_exists(
        self, schema: str | None, table: str, cascade: bool = False
    ) -> Statement:
        sql = f"DROP TABLE IF EXISTS {self.table(schema, table)}"
        if cascade and self.db_type == DatabaseType.POSTGRESQL:
            sql += " CASCADE"
        return Statement(sql)
