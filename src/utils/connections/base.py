"""
Base classes for explicit, per-session database connections.

A session owns exactly one connection per side for its lifetime; connections
are never pooled or shared, and closing them is the owner's responsibility.
Every statement is issued in autocommit mode.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from prometheus_client import Counter

from utils.database_types import DatabaseType
from utils.metrics import get_or_create_metric

logger = logging.getLogger(__name__)


# Metrics
DB_STATEMENT_ERRORS = get_or_create_metric(
    lambda: Counter(
        "db_statement_errors_total",
        "Number of failed database statements",
        ["database_type", "error_type"],
    ),
    "db_statement_errors_total",
)


@dataclass(frozen=True)
class ConnectionParams:
    """Engine connection parameters. Opaque to the core; never persisted."""

    host: str
    port: int
    user: str
    password: str = field(repr=False)
    database: str | None = None


class CredentialResolver(Protocol):
    """Looks up connection parameters by credential id (provided by a collaborator)."""

    def resolve(self, credential_id: str) -> ConnectionParams:
        ...


class DatabaseError(Exception):
    """Base exception for database failures reported by this package."""

    pass


class DatabaseConnectionError(DatabaseError, ConnectionError):
    """Raised when a connection cannot be established or was lost."""

    pass


class QueryError(DatabaseError):
    """Raised when a single statement fails on a live connection."""

    def __init__(
        self,
        message: str,
        code: int | str | None = None,
        table_missing: bool = False,
    ):
        super().__init__(message)
        self.code = code
        self.table_missing = table_missing


class DatabaseConnection:
    """
    Wrapper around a DB-API connection exposing the query primitive.

    Subclasses provide the driver-specific cursor, error classes and
    error translation.
    """

    db_type: DatabaseType

    def __init__(self, connection: Any, params: ConnectionParams | None = None):
        """
        Initialize connection wrapper.

        Args:
            connection: Open DB-API connection (autocommit enabled)
            params: Parameters the connection was opened with (for log context)
        """
        self._connection = connection
        self.params = params
        self._closed = False

    @property
    def dialect(self) -> DatabaseType:
        return self.db_type

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def raw(self) -> Any:
        """Underlying DB-API connection."""
        return self._connection

    def _cursor(self) -> Any:
        raise NotImplementedError

    def _driver_errors(self) -> tuple[type[BaseException], ...]:
        raise NotImplementedError

    def _translate_error(self, error: BaseException) -> DatabaseError:
        raise NotImplementedError

    def _close_connection(self) -> None:
        raise NotImplementedError

    def _ensure_open(self) -> None:
        if self._closed:
            raise DatabaseConnectionError(f"{self.db_type.value} connection is closed")

    def _translated(self, error: BaseException) -> DatabaseError:
        translated = self._translate_error(error)
        DB_STATEMENT_ERRORS.labels(
            database_type=self.db_type.value,
            error_type=type(translated).__name__,
        ).inc()
        return translated

    def query(self, sql: str, params: Sequence[Any] | None = None) -> list[dict[str, Any]]:
        """
        Execute a statement and return its rows as dictionaries.

        Statements without a result set return an empty list.
        """
        self._ensure_open()
        try:
            with self._cursor() as cursor:
                cursor.execute(sql, tuple(params) if params else None)
                if cursor.description is None:
                    return []
                return [dict(row) for row in cursor.fetchall()]
        except self._driver_errors() as e:
            raise self._translated(e) from e

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> int:
        """Execute a statement and return the affected row count."""
        self._ensure_open()
        try:
            with self._cursor() as cursor:
                cursor.execute(sql, tuple(params) if params else None)
                return cursor.rowcount
        except self._driver_errors() as e:
            raise self._translated(e) from e

    def execute_many(self, sql: str, rows: Iterable[Sequence[Any]]) -> int:
        """Execute one parameterized statement for every row."""
        self._ensure_open()
        batch = [tuple(r) for r in rows]
        if not batch:
            return 0
        try:
            with self._cursor() as cursor:
                cursor.executemany(sql, batch)
                return cursor.rowcount
        except self._driver_errors() as e:
            raise self._translated(e) from e

    def ping(self) -> bool:
        """Check that the connection is alive."""
        if self._closed:
            return False
        try:
            self.query("SELECT 1")
            return True
        except DatabaseError:
            return False

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            self._close_connection()
        except self._driver_errors() as e:
            logger.warning(f"Error closing {self.db_type.value} connection: {e}")

    def __enter__(self) -> "DatabaseConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        target = f"{self.params.host}:{self.params.port}" if self.params else "?"
        state = "closed" if self._closed else "open"
        return f"<{self.__class__.__name__} {target} {state}>"
