"""
Catalog introspection for MySQL and PostgreSQL.

Usage:
    from reconciliation.catalog import get_introspector

    catalog = get_introspector(connection)
    columns = catalog.describe_table("shop", "orders")
    snapshot = catalog.snapshot("shop", "orders")
"""

from utils.connections import DatabaseConnection
from utils.database_types import DatabaseType

from .base import CatalogIntrospector
from .mysql import SYSTEM_SCHEMAS, MySQLCatalog, format_default, split_default
from .postgres import DEFAULT_SCHEMA, PostgresCatalog


def get_introspector(connection: DatabaseConnection) -> CatalogIntrospector:
    """Return the introspector matching the connection's engine family."""
    if connection.dialect == DatabaseType.MYSQL:
        return MySQLCatalog(connection)
    return PostgresCatalog(connection)


__all__ = [
    "CatalogIntrospector",
    "MySQLCatalog",
    "PostgresCatalog",
    "get_introspector",
    "format_default",
    "split_default",
    "SYSTEM_SCHEMAS",
    "DEFAULT_SCHEMA",
]
