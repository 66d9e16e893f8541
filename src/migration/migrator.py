"""
One-shot MySQL to PostgreSQL table migration.

Each table goes through NOT_STARTED -> STRUCTURE_READ -> TARGET_DROPPED ->
TARGET_CREATED -> DATA_COPIED -> DONE, or stops in FAILED at the first step
that cannot complete. Rows are inserted one statement at a time; a failing
row is recorded and the copy continues. Nothing is wrapped in a transaction.
"""

import logging
import time
from collections.abc import Sequence

from opentelemetry import trace

from reconciliation.catalog import CatalogIntrospector, get_introspector
from reconciliation.errors import CatalogError, MigrationRowError, TableMissingError
from reconciliation.models import ColumnDescriptor
from utils.connections import DatabaseConnection, QueryError
from utils.database_types import DatabaseType
from utils.metrics.migration import MIGRATION_DURATION, MIGRATION_ROWS, MIGRATION_TABLES
from utils.query_builder import QueryBuilder
from utils.tracing import trace_operation

from .ddl import build_create_table, map_columns
from .literals import to_pg_param
from .models import MigrationOutcome, MigrationPlan, MigrationState
from .type_mapping import map_mysql_type

logger = logging.getLogger(__name__)


def _check_engines(source: DatabaseConnection, target: DatabaseConnection | None = None) -> None:
    if source.dialect != DatabaseType.MYSQL:
        raise ValueError(f"Migration source must be MySQL, got {source.dialect.value}")
    if target is not None and target.dialect != DatabaseType.POSTGRESQL:
        raise ValueError(f"Migration target must be PostgreSQL, got {target.dialect.value}")


def plan_migration(
    source_connection: DatabaseConnection,
    table: str,
    database: str | None = None,
    target_schema: str | None = None,
) -> MigrationPlan:
    """
    Describe the source table and build its PostgreSQL definition without writing.

    Raises:
        TableMissingError: If the table has no columns
        CatalogError: If the catalog cannot be read
    """
    _check_engines(source_connection)
    columns = get_introspector(source_connection).describe_table(database, table)
    return MigrationPlan(
        table_name=table,
        mapped_columns=map_columns(columns),
        create_statement=build_create_table(table, columns, schema=target_schema),
    )


def _reset_serial(
    target_connection: DatabaseConnection,
    table: str,
    columns: Sequence[ColumnDescriptor],
    target_schema: str | None,
) -> None:
    """Move SERIAL sequences past the copied keys."""
    keys = [c for c in columns if c.is_primary_key_member]
    if len(keys) != 1 or not keys[0].is_auto_increment:
        return

    builder = QueryBuilder(DatabaseType.POSTGRESQL)
    key = builder.ident(keys[0].name)
    qualified = builder.table(target_schema, table)
    sql = (
        f"SELECT setval(pg_get_serial_sequence(%s, %s), "
        f"COALESCE((SELECT MAX({key}) FROM {qualified}), 1))"
    )
    try:
        target_connection.query(sql, (qualified, keys[0].name))
    except QueryError as e:
        logger.warning(f"Could not reset the key sequence of {table}: {e}")


def migrate_table(
    source_connection: DatabaseConnection,
    target_connection: DatabaseConnection,
    table: str,
    database: str | None = None,
    target_schema: str | None = None,
) -> MigrationOutcome:
    """
    Recreate a MySQL table in PostgreSQL and copy its rows.

    The target table is dropped (CASCADE) and recreated from the mapped
    structure. Row failures are collected in ``outcome.failures``.

    Args:
        source_connection: MySQL connection
        target_connection: PostgreSQL connection
        table: Table to migrate
        database: Source database (None uses the connection's default)
        target_schema: Target schema (None uses the search path)

    Returns:
        MigrationOutcome with the final state and row counts

    Raises:
        DatabaseConnectionError: If either connection fails
    """
    _check_engines(source_connection, target_connection)
    outcome = MigrationOutcome(table_name=table)
    builder = QueryBuilder(DatabaseType.POSTGRESQL)
    catalog = get_introspector(source_connection)

    with trace_operation(
        "migrate_table", kind=trace.SpanKind.INTERNAL, table=table
    ) as span:
        start = time.perf_counter()
        try:
            _run_migration(
                catalog, target_connection, builder, table, database, target_schema, outcome
            )
        finally:
            MIGRATION_DURATION.labels(table=table).observe(time.perf_counter() - start)
            MIGRATION_TABLES.labels(state=outcome.state.value).inc()
            span.set_attribute("state", outcome.state.value)
            span.set_attribute("rows_inserted", outcome.rows_inserted)
            span.set_attribute("rows_failed", outcome.rows_failed)

    if outcome.success:
        logger.info(outcome.message)
    else:
        logger.error(outcome.message)
    return outcome


def _run_migration(
    catalog: CatalogIntrospector,
    target_connection: DatabaseConnection,
    builder: QueryBuilder,
    table: str,
    database: str | None,
    target_schema: str | None,
    outcome: MigrationOutcome,
) -> None:
    try:
        columns = catalog.describe_table(database, table)
    except TableMissingError:
        outcome.fail(f"No columns found for table {table}")
        return
    except CatalogError as e:
        outcome.fail(f"Failed to read the structure of {table}: {e}")
        return

    try:
        outcome.mapped_columns = map_columns(columns)
        outcome.create_statement = build_create_table(table, columns, schema=target_schema)
        drop = builder.drop_table_if_exists(target_schema, table, cascade=True)
    except ValueError as e:
        outcome.fail(f"Failed to migrate table {table}: {e}")
        return
    outcome.advance(MigrationState.STRUCTURE_READ)

    try:
        target_connection.execute(drop.sql)
        outcome.advance(MigrationState.TARGET_DROPPED)
        target_connection.execute(outcome.create_statement)
        outcome.advance(MigrationState.TARGET_CREATED)
    except QueryError as e:
        outcome.fail(f"Failed to migrate table {table}: {e}")
        return

    try:
        rows = catalog.fetch_rows(database, table)
    except CatalogError as e:
        outcome.fail(f"Failed to read rows of {table}: {e}")
        return

    names = [c.name for c in columns]
    targets = {c.name: map_mysql_type(c.native_type) for c in columns}
    insert_sql = builder.insert_sql(target_schema, table, names)
    key = next((c.name for c in columns if c.is_primary_key_member), None)

    for index, row in enumerate(rows):
        outcome.rows_attempted += 1
        params = [to_pg_param(row[n], targets[n]) if n in row else None for n in names]
        try:
            target_connection.execute(insert_sql, params)
        except QueryError as e:
            primary_key = row[key].to_native() if key and key in row else None
            failure = MigrationRowError(table, index, e, primary_key)
            outcome.failures.append(failure)
            MIGRATION_ROWS.labels(table=table, result="failed").inc()
            logger.warning(str(failure))
            continue
        outcome.rows_inserted += 1
        MIGRATION_ROWS.labels(table=table, result="inserted").inc()

    if outcome.rows_inserted:
        _reset_serial(target_connection, table, columns, target_schema)

    outcome.advance(MigrationState.DATA_COPIED)
    outcome.advance(MigrationState.DONE)


def migrate_tables(
    source_connection: DatabaseConnection,
    target_connection: DatabaseConnection,
    tables: Sequence[str] | None = None,
    database: str | None = None,
    target_schema: str | None = None,
) -> list[MigrationOutcome]:
    """
    Migrate several tables in order; every source table when ``tables`` is None.

    One table's failure never stops the others.
    """
    _check_engines(source_connection, target_connection)
    if tables is None:
        tables = get_introspector(source_connection).list_tables(database)

    outcomes = [
        migrate_table(source_connection, target_connection, t, database, target_schema)
        for t in tables
    ]
    succeeded = sum(1 for o in outcomes if o.success)
    logger.info(f"Migrated {succeeded} of {len(outcomes)} table(s)")
    return outcomes
