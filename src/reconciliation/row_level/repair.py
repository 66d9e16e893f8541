"""
Schema repair and whole-table replacement.

Both operations work between two connections of the same engine family:
DDL read from one side is executed verbatim on the other.
"""

import logging
import time
from collections.abc import Callable, Sequence

from opentelemetry import trace

from utils.connections import DatabaseConnection, QueryError
from utils.database_types import DatabaseType
from utils.metrics.reconciliation import COLUMNS_ADDED, TABLE_REPLACEMENTS
from utils.query_builder import QueryBuilder
from utils.sql_safety import backup_table_name
from utils.tracing import trace_operation

from ..catalog import get_introspector
from ..compare import check_columns
from ..errors import CatalogError, SchemaRepairError
from ..models import ColumnRepairResult, ReplaceOutcome

logger = logging.getLogger(__name__)


def _require_same_engine(source: DatabaseConnection, target: DatabaseConnection) -> None:
    if source.dialect != target.dialect:
        raise ValueError(
            f"Native DDL cannot be copied from {source.dialect.value} "
            f"to {target.dialect.value}; use the migration module instead"
        )


def _now_ms() -> int:
    return int(time.time() * 1000)


def _reset_sequences(
    connection: DatabaseConnection, database: str | None, table: str, columns: Sequence[str]
) -> list[str]:
    """Move identity and serial sequences past the copied keys; returns the failures."""
    builder = QueryBuilder(DatabaseType.POSTGRESQL)
    qualified = builder.table(database, table)
    failures = []
    for column in columns:
        key = builder.ident(column)
        sql = (
            f"SELECT setval(pg_get_serial_sequence(%s, %s), "
            f"COALESCE(MAX({key}), 1), MAX({key}) IS NOT NULL) FROM {qualified}"
        )
        try:
            connection.query(sql, (qualified, column))
        except QueryError as e:
            failures.append(f"Could not reset the sequence of {table}.{column}: {e}")
    return failures


def replace_table(
    source_connection: DatabaseConnection,
    target_connection: DatabaseConnection,
    database: str | None,
    table: str,
    batch_size: int = 500,
    backup_suffix: str = "backup",
    clock: Callable[[], int] = _now_ms,
) -> ReplaceOutcome:
    """
    Replace a table with the source side's structure and contents.

    The target table is renamed to ``<table>_<suffix>_<epoch-ms>`` first,
    then recreated from the source DDL and filled in batches. The backup is
    never dropped.

    On PostgreSQL the rebuilt table also gets the source's constraints and
    indexes beyond the primary key, and its identity sequences are moved past
    the copied keys. Failures of those steps are reported as warnings.
    Foreign keys in other tables keep referencing the backup.

    Args:
        source_connection: Authoritative side
        target_connection: Side whose table is replaced
        database: Database (MySQL) or schema (PostgreSQL)
        table: Table name
        batch_size: Rows per executemany call
        backup_suffix: Infix of the backup name
        clock: Epoch-millisecond source for the backup name

    Returns:
        ReplaceOutcome; success only if the rename and the full copy succeeded

    Raises:
        DatabaseConnectionError: If either connection fails
    """
    _require_same_engine(source_connection, target_connection)
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    dialect = target_connection.dialect
    builder = QueryBuilder(dialect)
    source_catalog = get_introspector(source_connection)

    with trace_operation(
        "replace_table",
        kind=trace.SpanKind.INTERNAL,
        table=table,
        db_type=dialect.value,
    ) as span:
        try:
            ddl = source_catalog.create_table_statement(database, table)
            secondary = source_catalog.secondary_statements(database, table)
            sequenced = []
            if dialect == DatabaseType.POSTGRESQL:
                sequenced = [
                    c.name
                    for c in source_catalog.describe_table(database, table)
                    if c.is_auto_increment
                ]
        except (CatalogError, ValueError) as e:
            TABLE_REPLACEMENTS.labels(table=table, status="failed").inc()
            return ReplaceOutcome(
                table_name=table,
                backup_name=None,
                success=False,
                error=f"Could not read the structure of {table} from the source: {e}; nothing was changed",
            )

        backup_name = backup_table_name(table, clock(), dialect, backup_suffix)
        span.set_attribute("backup_name", backup_name)

        try:
            rename = builder.rename_table(database, table, backup_name)
            target_connection.execute(rename.sql, rename.params)
        except (QueryError, ValueError) as e:
            TABLE_REPLACEMENTS.labels(table=table, status="failed").inc()
            logger.error(f"Could not rename {table} to {backup_name}: {e}")
            return ReplaceOutcome(
                table_name=table,
                backup_name=None,
                success=False,
                error=f"Could not rename {table} to {backup_name}: {e}; nothing was changed",
            )

        logger.info(f"Table {table} backed up as {backup_name}")

        copied = 0
        try:
            target_connection.execute(ddl)
            rows = source_catalog.fetch_rows(database, table)
            if rows:
                columns = list(rows[0])
                insert_sql = builder.insert_sql(database, table, columns)
                for start in range(0, len(rows), batch_size):
                    batch = rows[start:start + batch_size]
                    target_connection.execute_many(
                        insert_sql,
                        [[row[c].to_native() for c in columns] for row in batch],
                    )
                    copied += len(batch)
        except (QueryError, CatalogError, ValueError) as e:
            TABLE_REPLACEMENTS.labels(table=table, status="failed").inc()
            logger.error(
                f"Replacement of {table} failed after the rename; original data is in {backup_name}"
            )
            return ReplaceOutcome(
                table_name=table,
                backup_name=backup_name,
                success=False,
                rows_copied=copied,
                error=(
                    f"Table {table} was renamed to {backup_name} but rebuilding it failed "
                    f"after {copied} row(s): {e}. The original data is preserved in "
                    f"{backup_name}; manual intervention is required."
                ),
            )

        warnings = _reset_sequences(target_connection, database, table, sequenced)
        for statement in secondary:
            try:
                target_connection.execute(statement)
            except QueryError as e:
                warnings.append(f"Could not recreate on {table}: {statement}: {e}")
        for warning in warnings:
            logger.warning(warning)

        TABLE_REPLACEMENTS.labels(table=table, status="success").inc()
        span.set_attribute("rows_copied", copied)
        logger.info(f"Table {table} replaced from source ({copied} rows)")
        return ReplaceOutcome(
            table_name=table,
            backup_name=backup_name,
            success=True,
            rows_copied=copied,
            warnings=warnings,
        )


def repair_columns(
    source_connection: DatabaseConnection,
    target_connection: DatabaseConnection,
    database: str | None,
    table: str,
    missing_columns: Sequence[str],
) -> list[ColumnRepairResult]:
    """
    Add columns that exist on the source side to the target side.

    Each column is repaired independently; one failing column does not stop
    the others.

    Returns:
        One ColumnRepairResult per requested column, in order
    """
    _require_same_engine(source_connection, target_connection)
    source_catalog = get_introspector(source_connection)
    builder = QueryBuilder(target_connection.dialect)
    results: list[ColumnRepairResult] = []

    with trace_operation(
        "repair_columns",
        kind=trace.SpanKind.INTERNAL,
        table=table,
        column_count=len(missing_columns),
    ):
        for column in missing_columns:
            try:
                definition = source_catalog.column_definition(database, table, column)
                statement = builder.add_column(database, table, column, definition)
                target_connection.execute(statement.sql, statement.params)
            except (CatalogError, QueryError, ValueError) as e:
                failure = SchemaRepairError(table, column, e)
                logger.warning(str(failure))
                COLUMNS_ADDED.labels(table=table, status="failed").inc()
                results.append(ColumnRepairResult(column=column, added=False, error=str(e)))
                continue

            logger.info(f"Added column {column} to {table}: {definition}")
            COLUMNS_ADDED.labels(table=table, status="success").inc()
            results.append(ColumnRepairResult(column=column, added=True))

    return results


def sync_schema(
    local_connection: DatabaseConnection,
    production_connection: DatabaseConnection,
    database: str | None,
    table: str,
) -> list[ColumnRepairResult]:
    """
    Add production columns that are missing locally.

    Returns:
        One result per missing column; empty if the column sets already agree

    Raises:
        CatalogError: If either side's columns cannot be read
    """
    local_columns = get_introspector(local_connection).describe_table(database, table)
    production_columns = get_introspector(production_connection).describe_table(database, table)
    missing = check_columns(local_columns, production_columns).missing_in_source

    if not missing:
        logger.info(f"All production columns already exist locally for {table}")
        return []

    return repair_columns(production_connection, local_connection, database, table, missing)
