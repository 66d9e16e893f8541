"""PostgreSQL connection implementation (psycopg2)."""

from typing import Any

import psycopg2
import psycopg2.extensions
import psycopg2.extras
from opentelemetry import trace

from utils.database_types import DatabaseType
from utils.tracing import trace_operation

from .base import (
    ConnectionParams,
    DatabaseConnection,
    DatabaseConnectionError,
    DatabaseError,
    QueryError,
)

# undefined_table, invalid_schema_name
TABLE_MISSING_CODES = frozenset({"42P01", "3F000"})


class PostgresConnection(DatabaseConnection):
    """Connection wrapper for PostgreSQL."""

    db_type = DatabaseType.POSTGRESQL

    def _cursor(self) -> Any:
        return self._connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor)

    def _driver_errors(self) -> tuple[type[BaseException], ...]:
        return (psycopg2.Error,)

    def _translate_error(self, error: BaseException) -> DatabaseError:
        code = getattr(error, "pgcode", None)
        message = str(error).strip()

        if isinstance(error, (psycopg2.OperationalError, psycopg2.InterfaceError)) or (
            self._connection.closed
        ):
            return DatabaseConnectionError(f"PostgreSQL connection failure: {message}")

        return QueryError(message, code=code, table_missing=code in TABLE_MISSING_CODES)

    def _close_connection(self) -> None:
        if not self._connection.closed:
            self._connection.close()


def connect_postgres(
    params: ConnectionParams, connect_timeout: int = 10
) -> PostgresConnection:
    """
    Open a PostgreSQL connection in autocommit mode.

    Raises:
        DatabaseConnectionError: If the server cannot be reached or rejects the login
    """
    with trace_operation(
        "postgres_connect",
        kind=trace.SpanKind.CLIENT,
        db_host=params.host,
        db_name=params.database or "",
    ):
        try:
            conn = psycopg2.connect(
                host=params.host,
                port=params.port,
                database=params.database,
                user=params.user,
                password=params.password,
                connect_timeout=connect_timeout,
            )
        except psycopg2.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to PostgreSQL at {params.host}:{params.port}: {e}"
            ) from e
        # Failed statements must not poison the statements that follow
        conn.set_session(autocommit=True)

    return PostgresConnection(conn, params)
