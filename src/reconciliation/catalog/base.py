"""
Engine-neutral catalog introspection.

Subclasses supply the catalog queries for their engine; everything built on
top of those queries (primary key resolution, snapshots, error mapping) is
shared here.
"""

import logging
from collections.abc import Sequence
from typing import Any

from opentelemetry import trace

from utils.connections import DatabaseConnection, QueryError
from utils.database_types import DatabaseType
from utils.query_builder import QueryBuilder
from utils.tracing import trace_operation

from ..errors import CatalogError, TableMissingError
from ..models import ColumnDescriptor, TableSnapshot
from ..values import Record, to_record

logger = logging.getLogger(__name__)


class CatalogIntrospector:
    """Reads table metadata and contents through one connection."""

    db_type: DatabaseType

    def __init__(self, connection: DatabaseConnection):
        if connection.dialect != self.db_type:
            raise ValueError(
                f"{self.__class__.__name__} needs a {self.db_type.value} connection, "
                f"got {connection.dialect.value}"
            )
        self.connection = connection
        self.builder = QueryBuilder(self.db_type)

    # Engine-specific hooks

    def list_databases(self) -> list[str]:
        raise NotImplementedError

    def list_tables(self, database: str | None) -> list[str]:
        raise NotImplementedError

    def _describe_rows(self, database: str | None, table: str) -> list[dict[str, Any]]:
        raise NotImplementedError

    def _to_descriptor(self, row: dict[str, Any]) -> ColumnDescriptor:
        raise NotImplementedError

    def create_table_statement(self, database: str | None, table: str) -> str:
        raise NotImplementedError

    def column_definition(self, database: str | None, table: str, column: str) -> str:
        raise NotImplementedError

    def secondary_statements(self, database: str | None, table: str) -> list[str]:
        """Statements recreating what create_table_statement leaves out; none by default."""
        return []

    # Shared operations

    def _run(
        self, sql: str, params: Sequence[Any] | None = None, table: str | None = None
    ) -> list[dict[str, Any]]:
        """Run a catalog query, mapping statement failures to CatalogError."""
        try:
            return self.connection.query(sql, params)
        except QueryError as e:
            if e.table_missing:
                raise TableMissingError(f"Table {table} does not exist: {e}", table, e) from e
            raise CatalogError(f"Catalog query failed for {table or 'catalog'}: {e}", table, e) from e

    def describe_table(self, database: str | None, table: str) -> list[ColumnDescriptor]:
        """
        Columns of a table in ordinal order.

        Raises:
            TableMissingError: If the table does not exist or has no columns
            CatalogError: If the catalog query fails
        """
        columns = [self._to_descriptor(row) for row in self._describe_rows(database, table)]
        if not columns:
            raise TableMissingError(f"No columns found for table {table}", table)
        return columns

    def primary_key(self, database: str | None, table: str) -> str | None:
        """The primary key column if exactly one column forms the key, else None."""
        members = [c.name for c in self.describe_table(database, table) if c.is_primary_key_member]
        if len(members) == 1:
            return members[0]
        if len(members) > 1:
            logger.info(f"{table} has a composite primary key {members}; not diffable")
        return None

    def table_exists(self, database: str | None, table: str) -> bool:
        return table in self.list_tables(database)

    def fetch_rows(self, database: str | None, table: str) -> list[Record]:
        with trace_operation(
            "catalog_fetch_rows",
            kind=trace.SpanKind.CLIENT,
            db_type=self.db_type.value,
            table=table,
        ) as span:
            statement = self.builder.select_all(database, table)
            rows = [to_record(row) for row in self._run(statement.sql, statement.params, table)]
            span.set_attribute("row_count", len(rows))
            logger.debug(f"Fetched {len(rows)} rows from {table}")
            return rows

    def row_count(self, database: str | None, table: str) -> int:
        statement = self.builder.count_rows(database, table)
        rows = self._run(statement.sql, statement.params, table)
        return int(rows[0]["row_count"]) if rows else 0

    def snapshot(self, database: str | None, table: str) -> TableSnapshot:
        """Columns, primary key and all rows of a table."""
        columns = self.describe_table(database, table)
        members = [c.name for c in columns if c.is_primary_key_member]
        return TableSnapshot(
            table_name=table,
            columns=columns,
            primary_key_column=members[0] if len(members) == 1 else None,
            rows=self.fetch_rows(database, table),
        )
