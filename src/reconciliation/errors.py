"""
Exceptions raised by catalog introspection, reconciliation and schema repair.

Connection failures are not defined here: they surface as
``utils.connections.DatabaseConnectionError`` and are never caught by the
operations in this package.
"""

from enum import Enum


class CatalogErrorKind(str, Enum):
    TABLE_MISSING = "table_missing"
    OTHER = "other"


class CatalogError(Exception):
    """Metadata could not be read for a table or database."""

    kind = CatalogErrorKind.OTHER

    def __init__(self, message: str, table: str | None = None, cause: BaseException | None = None):
        super().__init__(message)
        self.table = table
        self.cause = cause


class TableMissingError(CatalogError):
    """The table does not exist (or has no visible columns)."""

    kind = CatalogErrorKind.TABLE_MISSING


class ReconciliationError(Exception):
    """A statement failed part-way through applying a diff."""

    def __init__(self, table: str, applied: int, cause: BaseException):
        super().__init__(f"Reconciliation of {table} failed after {applied} record(s): {cause}")
        self.table = table
        self.applied = applied
        self.cause = cause


class MigrationRowError(Exception):
    """One row could not be inserted during migration."""

    def __init__(self, table: str, row_index: int, cause: BaseException, primary_key: object = None):
        key = f" (key {primary_key!r})" if primary_key is not None else ""
        super().__init__(f"Row {row_index}{key} of {table} failed: {cause}")
        self.table = table
        self.row_index = row_index
        self.primary_key = primary_key
        self.cause = cause


class SchemaRepairError(Exception):
    """A single column could not be added during schema repair."""

    def __init__(self, table: str, column: str, cause: BaseException | str):
        super().__init__(f"Could not add column {column} to {table}: {cause}")
        self.table = table
        self.column = column
        self.cause = cause
