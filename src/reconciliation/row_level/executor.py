"""
Apply a record diff to the side being synced.

Records are upserted one statement at a time. The first failing statement
stops the loop and the table's failure policy decides what happens next:
skip the table (partial counts are reported) or replace it wholesale from
the authoritative side. Connection failures are never handled here.
"""

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from opentelemetry import trace

from utils.connections import DatabaseConnection, QueryError
from utils.logging import ContextLogger
from utils.metrics.reconciliation import (
    RECONCILIATION_DURATION,
    RECONCILIATION_OUTCOMES,
    RECORDS_DELETED,
    RECORDS_UPSERTED,
)
from utils.query_builder import QueryBuilder
from utils.tracing import trace_operation

from ..errors import ReconciliationError
from ..models import DiffResult, TableReconciliationOutcome
from ..values import Record
from .repair import replace_table

logger = logging.getLogger(__name__)


class FailurePolicy(str, Enum):
    """What to do with a table whose reconciliation failed mid-way."""

    SKIP = "skip"
    REPLACE = "replace"


FailureHandler = Callable[[str, ReconciliationError], FailurePolicy]


@dataclass(frozen=True)
class ReconcileOptions:
    """
    Per-call reconciliation behaviour.

    Attributes:
        delete_local_only: Also delete records that exist only on the synced side
        confirm_delete: Called with (table, count) before deleting; False aborts the delete
        on_failure: A FailurePolicy, or a callable choosing one per failure
        source_connection: Authoritative side, required for REPLACE
        batch_size: Rows per executemany batch when a table is replaced
        backup_suffix: Infix of the backup table name used by REPLACE
    """

    delete_local_only: bool = False
    confirm_delete: Callable[[str, int], bool] | None = None
    on_failure: FailurePolicy | FailureHandler = FailurePolicy.SKIP
    source_connection: DatabaseConnection | None = None
    batch_size: int = 500
    backup_suffix: str = "backup"

    def resolve_policy(self, table: str, error: ReconciliationError) -> FailurePolicy:
        if isinstance(self.on_failure, FailurePolicy):
            return self.on_failure
        return FailurePolicy(self.on_failure(table, error))


def _upsert_all(
    connection: DatabaseConnection,
    database: str | None,
    table: str,
    records: Sequence[Record],
    primary_key: str,
) -> int:
    """
    Upsert every record; raise ReconciliationError on the first failing statement.

    Returns:
        Number of records written
    """
    builder = QueryBuilder(connection.dialect)
    applied = 0
    for record in records:
        columns = list(record)
        try:
            # Column names come from the records and may not be valid identifiers
            statement = builder.upsert(
                database,
                table,
                columns,
                primary_key,
                [record[c].to_native() for c in columns],
            )
            connection.execute(statement.sql, statement.params)
        except (QueryError, ValueError) as e:
            raise ReconciliationError(table, applied, e) from e
        applied += 1
    return applied


def delete_local_only(
    target_connection: DatabaseConnection,
    database: str | None,
    table: str,
    records: Sequence[Record],
    primary_key: str,
) -> int:
    """
    Delete records by primary key, one statement per record.

    Only ever called explicitly; a diff is never applied destructively by
    default.

    Returns:
        Number of DELETE statements executed

    Raises:
        ReconciliationError: If a DELETE cannot be built or fails
    """
    builder = QueryBuilder(target_connection.dialect)
    deleted = 0
    with trace_operation(
        "delete_local_only",
        kind=trace.SpanKind.CLIENT,
        table=table,
        record_count=len(records),
    ):
        try:
            for record in records:
                if primary_key not in record:
                    raise ValueError(f"Record has no primary key column {primary_key!r}")
                try:
                    statement = builder.delete_by_key(
                        database, table, primary_key, record[primary_key].to_native()
                    )
                    target_connection.execute(statement.sql, statement.params)
                except (QueryError, ValueError) as e:
                    raise ReconciliationError(table, deleted, e) from e
                deleted += 1
        finally:
            if deleted:
                RECORDS_DELETED.labels(table=table).inc(deleted)

    logger.info(f"Deleted {deleted} record(s) from {table}")
    return deleted


def reconcile(
    target_connection: DatabaseConnection,
    database: str | None,
    table: str,
    diff: DiffResult,
    primary_key: str,
    options: ReconcileOptions | None = None,
) -> TableReconciliationOutcome:
    """
    Bring one table in line with a diff.

    Upserts ``diff.records_to_upsert()`` and, when requested and confirmed,
    deletes ``diff.records_to_delete()``.

    Args:
        target_connection: Connection to the side being synced
        database: Database (MySQL) or schema (PostgreSQL) holding the table
        table: Table name
        diff: Result of diff_table(synced side, authoritative side)
        primary_key: Key column of the table
        options: Delete and failure behaviour

    Returns:
        TableReconciliationOutcome; statement failures are reported in it

    Raises:
        DatabaseConnectionError: If the connection fails
    """
    options = options or ReconcileOptions()
    log = ContextLogger(__name__, database=database, table_name=table)
    outcome = TableReconciliationOutcome(table_name=table)
    records = diff.records_to_upsert()

    with trace_operation(
        "reconcile_table",
        kind=trace.SpanKind.INTERNAL,
        table=table,
        records_to_upsert=len(records),
        delete_local_only=options.delete_local_only,
    ) as span:
        start = time.perf_counter()
        failure: ReconciliationError | None = None

        try:
            outcome.upserted = _upsert_all(target_connection, database, table, records, primary_key)
        except ReconciliationError as e:
            outcome.upserted = e.applied
            failure = e
        if outcome.upserted:
            RECORDS_UPSERTED.labels(table=table).inc(outcome.upserted)

        to_delete = diff.records_to_delete()
        if failure is None and options.delete_local_only and to_delete:
            if options.confirm_delete is None or options.confirm_delete(table, len(to_delete)):
                try:
                    outcome.deleted = delete_local_only(
                        target_connection, database, table, to_delete, primary_key
                    )
                except ReconciliationError as e:
                    outcome.deleted = e.applied
                    failure = e
            else:
                log.info("Deletion of local-only records declined", count=len(to_delete))

        if failure is not None:
            log.error(f"Reconciliation failed: {failure.cause}", applied=failure.applied)
            _handle_failure(target_connection, database, table, failure, options, outcome)

        RECONCILIATION_DURATION.labels(table=table).observe(time.perf_counter() - start)
        status = "replaced" if outcome.replaced else ("success" if outcome.success else "failed")
        RECONCILIATION_OUTCOMES.labels(table=table, status=status).inc()
        span.set_attribute("status", status)
        span.set_attribute("upserted", outcome.upserted)
        span.set_attribute("deleted", outcome.deleted)

    log.info(outcome.message)
    return outcome


def _handle_failure(
    target_connection: DatabaseConnection,
    database: str | None,
    table: str,
    error: ReconciliationError,
    options: ReconcileOptions,
    outcome: TableReconciliationOutcome,
) -> None:
    policy = options.resolve_policy(table, error)

    if policy == FailurePolicy.SKIP:
        outcome.error = str(error.cause)
        return

    if options.source_connection is None:
        outcome.error = (
            f"{error.cause}; replacement unavailable without a connection to the "
            f"authoritative side"
        )
        return

    replacement = replace_table(
        options.source_connection,
        target_connection,
        database,
        table,
        batch_size=options.batch_size,
        backup_suffix=options.backup_suffix,
    )
    outcome.backup_name = replacement.backup_name
    if replacement.success:
        outcome.replaced = True
        outcome.error = None
    else:
        outcome.error = f"{error.cause}; {replacement.message}"
