"""
Local-versus-production sync session.

A session owns one connection to each side for its lifetime and closes both
on exit, whether the work inside succeeded or not. Production is the source
of truth: tables are enumerated, keyed and described from production, and
changes only ever flow toward local.
"""

import dataclasses
import logging

from opentelemetry import trace

from utils.connections import ConnectionParams, DatabaseConnection, QueryError, connect
from utils.database_types import DatabaseType
from utils.tracing import trace_operation

from .catalog import get_introspector
from .compare import check_columns, diff_table
from .config import SyncSettings
from .errors import CatalogError, TableMissingError
from .models import ColumnRepairResult, TableComparison, TableReconciliationOutcome
from .row_level import ReconcileOptions, reconcile, sync_schema

logger = logging.getLogger(__name__)

NO_PRIMARY_KEY = "No primary key in production (table exists but cannot sync)"


class SyncSession:
    """
    Compare and sync tables between a local and a production database.

    Usage:
        with SyncSession.open(local_params, prod_params, "mysql") as session:
            comparisons = session.compare_database("shop")
            for comparison in session.tables_to_sync(comparisons):
                session.sync_table("shop", comparison)
    """

    def __init__(
        self,
        local: DatabaseConnection,
        production: DatabaseConnection,
        settings: SyncSettings | None = None,
    ):
        if local.dialect != production.dialect:
            raise ValueError(
                f"Local ({local.dialect.value}) and production ({production.dialect.value}) "
                "must use the same engine"
            )
        self.local = local
        self.production = production
        self.settings = settings or SyncSettings()

    @classmethod
    def open(
        cls,
        local_params: ConnectionParams,
        production_params: ConnectionParams,
        db_type: DatabaseType | str,
        settings: SyncSettings | None = None,
    ) -> "SyncSession":
        """
        Connect to both sides.

        Raises:
            DatabaseConnectionError: If either side cannot be reached; the
                local connection is closed if production fails
        """
        settings = settings or SyncSettings()
        local = connect(local_params, db_type, connect_timeout=settings.connect_timeout)
        try:
            production = connect(
                production_params, db_type, connect_timeout=settings.connect_timeout
            )
        except Exception:
            local.close()
            raise
        return cls(local, production, settings)

    def close(self) -> None:
        try:
            self.local.close()
        finally:
            self.production.close()

    def __enter__(self) -> "SyncSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def compare_table(self, database: str | None, table: str) -> TableComparison:
        """
        Compare one production table with its local counterpart.

        A table missing locally compares as an empty local side. A table
        without a single-column primary key is reported but not diffed.

        Raises:
            CatalogError: If the production side cannot be read
        """
        production = get_introspector(self.production)
        local = get_introspector(self.local)

        with trace_operation(
            "compare_table", kind=trace.SpanKind.INTERNAL, table=table
        ) as span:
            production_columns = production.describe_table(database, table)
            members = [c.name for c in production_columns if c.is_primary_key_member]
            primary_key = members[0] if len(members) == 1 else None

            missing_locally = False
            try:
                local_columns = local.describe_table(database, table)
                local_rows = local.fetch_rows(database, table)
            except TableMissingError:
                logger.info(f"{table} does not exist locally")
                local_columns, local_rows = [], []
                missing_locally = True

            production_rows = production.fetch_rows(database, table)

            comparison = TableComparison(
                table_name=table,
                primary_key=primary_key,
                source_count=len(local_rows),
                target_count=len(production_rows),
                only_in_target_side=missing_locally,
            )
            if primary_key is None:
                comparison.error = NO_PRIMARY_KEY
                return comparison

            comparison.columns = check_columns(local_columns, production_columns)
            try:
                comparison.diff = diff_table(
                    local_rows,
                    production_rows,
                    primary_key,
                    precision=self.settings.timestamp_precision,
                    table_name=table,
                )
            except ValueError as e:
                comparison.error = str(e)

            span.set_attribute("needs_sync", comparison.needs_sync)
            return comparison

    def compare_database(
        self, database: str | None, tables: list[str] | None = None
    ) -> list[TableComparison]:
        """
        Compare every production table (or the given ones).

        A table that cannot be compared gets an entry with ``error`` set; the
        remaining tables are still compared.
        """
        if tables is None:
            tables = get_introspector(self.production).list_tables(database)
        logger.info(f"Comparing {len(tables)} production table(s) in {database}")

        comparisons = []
        for table in tables:
            try:
                comparisons.append(self.compare_table(database, table))
            except (CatalogError, ValueError) as e:
                logger.error(f"Error processing table {table}: {e}")
                comparisons.append(TableComparison(table_name=table, error=str(e)))
        return comparisons

    @staticmethod
    def tables_to_sync(comparisons: list[TableComparison]) -> list[TableComparison]:
        return [c for c in comparisons if c.needs_sync]

    def sync_table(
        self,
        database: str | None,
        comparison: TableComparison,
        options: ReconcileOptions | None = None,
    ) -> TableReconciliationOutcome:
        """
        Apply a comparison's diff to the local side.

        A table missing locally is first created from the production DDL.
        Replacement on failure always uses production as the source.
        """
        table = comparison.table_name
        if comparison.error or comparison.diff is None or comparison.primary_key is None:
            return TableReconciliationOutcome(
                table_name=table, error=comparison.error or "Table was not compared"
            )

        if options is None:
            options = ReconcileOptions(
                batch_size=self.settings.copy_batch_size,
                backup_suffix=self.settings.backup_suffix,
            )
        if options.source_connection is None:
            options = dataclasses.replace(options, source_connection=self.production)

        if comparison.only_in_target_side:
            try:
                ddl = get_introspector(self.production).create_table_statement(database, table)
                self.local.execute(ddl)
            except (CatalogError, QueryError) as e:
                return TableReconciliationOutcome(table_name=table, error=str(e))
            logger.info(f"Created missing local table {table} from production")

        return reconcile(
            self.local, database, table, comparison.diff, comparison.primary_key, options
        )

    def sync_schema(self, database: str | None, table: str) -> list[ColumnRepairResult]:
        """Add production columns missing from the local table."""
        return sync_schema(self.local, self.production, database, table)
