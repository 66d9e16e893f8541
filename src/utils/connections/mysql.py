"""MySQL connection implementation (PyMySQL)."""

from typing import Any

import pymysql
import pymysql.cursors
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

# Client error codes that mean the server is unreachable or the link dropped
CONNECTION_LOST_CODES = frozenset({2003, 2006, 2013, 2055})

# ER_NO_SUCH_TABLE, ER_BAD_TABLE_ERROR, ER_BAD_DB_ERROR
TABLE_MISSING_CODES = frozenset({1146, 1051, 1049})


class MySQLConnection(DatabaseConnection):
    """Connection wrapper for MySQL / MariaDB."""

    db_type = DatabaseType.MYSQL

    def _cursor(self) -> Any:
        return self._connection.cursor(pymysql.cursors.DictCursor)

    def _driver_errors(self) -> tuple[type[BaseException], ...]:
        return (pymysql.err.MySQLError,)

    def _translate_error(self, error: BaseException) -> DatabaseError:
        code = error.args[0] if error.args and isinstance(error.args[0], int) else None
        message = str(error.args[1]) if len(error.args) > 1 else str(error)

        if isinstance(error, pymysql.err.InterfaceError) or code in CONNECTION_LOST_CODES:
            return DatabaseConnectionError(f"MySQL connection failure: {message}")

        return QueryError(message, code=code, table_missing=code in TABLE_MISSING_CODES)

    def _close_connection(self) -> None:
        if self._connection.open:
            self._connection.close()


def connect_mysql(params: ConnectionParams, connect_timeout: int = 10) -> MySQLConnection:
    """
    Open a MySQL connection in autocommit mode.

    Raises:
        DatabaseConnectionError: If the server cannot be reached or rejects the login
    """
    with trace_operation(
        "mysql_connect",
        kind=trace.SpanKind.CLIENT,
        db_host=params.host,
        db_name=params.database or "",
    ):
        try:
            conn = pymysql.connect(
                host=params.host,
                port=params.port,
                user=params.user,
                password=params.password,
                database=params.database,
                connect_timeout=connect_timeout,
                charset="utf8mb4",
                autocommit=True,
                cursorclass=pymysql.cursors.DictCursor,
            )
        except pymysql.err.MySQLError as e:
            raise DatabaseConnectionError(
                f"Failed to connect to MySQL at {params.host}:{params.port}: {e}"
            ) from e

    return MySQLConnection(conn, params)
