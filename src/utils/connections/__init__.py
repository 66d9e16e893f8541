"""
Explicit database connections for MySQL and PostgreSQL.

Every operation in the core receives its connection as an argument; there is
no module-level connection state.
"""

from utils.database_types import DatabaseType

from .base import (
    ConnectionParams,
    CredentialResolver,
    DatabaseConnection,
    DatabaseConnectionError,
    DatabaseError,
    QueryError,
)
from .mysql import MySQLConnection, connect_mysql
from .postgres import PostgresConnection, connect_postgres


def connect(
    params: ConnectionParams,
    db_type: DatabaseType | str,
    connect_timeout: int = 10,
) -> DatabaseConnection:
    """
    Open a connection for the given engine family.

    Args:
        params: Host, port, credentials and database
        db_type: DatabaseType or an engine name ('mysql', 'postgres', ...)
        connect_timeout: Driver connect timeout in seconds

    Raises:
        DatabaseConnectionError: If the connection cannot be established
    """
    if isinstance(db_type, str) and not isinstance(db_type, DatabaseType):
        db_type = DatabaseType.from_name(db_type)

    if db_type == DatabaseType.MYSQL:
        return connect_mysql(params, connect_timeout=connect_timeout)
    return connect_postgres(params, connect_timeout=connect_timeout)


__all__ = [
    "ConnectionParams",
    "CredentialResolver",
    "DatabaseConnection",
    "DatabaseConnectionError",
    "DatabaseError",
    "QueryError",
    "MySQLConnection",
    "PostgresConnection",
    "connect",
    "connect_mysql",
    "connect_postgres",
]
