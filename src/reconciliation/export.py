"""
SQL export of a single table: its idempotent CREATE statement followed by
one INSERT per row.
"""

import logging
from datetime import UTC, datetime

from opentelemetry import trace

from migration.literals import render_insert
from utils.connections import DatabaseConnection
from utils.tracing import trace_operation

from .catalog import get_introspector

logger = logging.getLogger(__name__)


def export_table(connection: DatabaseConnection, database: str | None, table: str) -> str:
    """
    Generate a replayable SQL script for one table.

    Args:
        connection: Connection to read from
        database: Database (MySQL) or schema (PostgreSQL)
        table: Table name

    Returns:
        SQL script text

    Raises:
        TableMissingError: If the table does not exist
        CatalogError: If its structure or rows cannot be read
    """
    catalog = get_introspector(connection)

    with trace_operation(
        "export_table", kind=trace.SpanKind.INTERNAL, table=table
    ):
        create_statement = catalog.create_table_statement(database, table)
        columns = [c.name for c in catalog.describe_table(database, table)]
        rows = catalog.fetch_rows(database, table)

        total = f"{len(rows)}" if rows else "0 (structure only)"
        script_lines = [
            f"-- SQL Export from {database or connection.dialect.value}.{table}",
            f"-- Generated: {datetime.now(UTC).isoformat()}",
            f"-- Total records: {total}",
            "",
            create_statement + ";",
        ]

        if rows:
            script_lines.append("")
            for row in rows:
                script_lines.append(
                    render_insert(table, columns, row, dialect=connection.dialect) + ";"
                )

        logger.info(f"Exported {table} ({len(rows)} rows)")
        return "\n".join(script_lines)
