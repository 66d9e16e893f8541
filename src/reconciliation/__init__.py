"""
Reconciliation between a local and a production database of the same engine

Components:
- catalog: column, key and DDL introspection for MySQL and PostgreSQL
- values: tagged column values and canonical equality
- compare: record diff by primary key and column consistency
- row_level: upsert/delete executor, failure policies, schema repair, table replacement
- session: connection pair lifecycle and multi-table comparison
- export: CREATE + INSERT script for one table

Usage:
    from reconciliation import SyncSession, diff_table, export_table, reconcile
"""

from .compare import check_columns, diff_table
from .config import SyncSettings
from .errors import (
    CatalogError,
    CatalogErrorKind,
    MigrationRowError,
    ReconciliationError,
    SchemaRepairError,
    TableMissingError,
)
from .models import (
    ColumnConsistencyResult,
    ColumnDescriptor,
    ColumnRepairResult,
    DiffResult,
    ModifiedRecord,
    ReplaceOutcome,
    TableComparison,
    TableReconciliationOutcome,
    TableSnapshot,
)
from .row_level import (
    FailurePolicy,
    ReconcileOptions,
    delete_local_only,
    reconcile,
    repair_columns,
    replace_table,
    sync_schema,
)
from .session import SyncSession
from .values import TimestampPrecision, Value, ValueKind

# Last: export pulls in the migration package, which imports the modules above
from .export import export_table

__version__ = "0.1.0"
__all__ = [
    "diff_table",
    "check_columns",
    "reconcile",
    "delete_local_only",
    "repair_columns",
    "replace_table",
    "sync_schema",
    "export_table",
    "ReconcileOptions",
    "FailurePolicy",
    "SyncSession",
    "SyncSettings",
    "Value",
    "ValueKind",
    "TimestampPrecision",
    "ColumnDescriptor",
    "TableSnapshot",
    "DiffResult",
    "ModifiedRecord",
    "ColumnConsistencyResult",
    "TableReconciliationOutcome",
    "ColumnRepairResult",
    "ReplaceOutcome",
    "TableComparison",
    "CatalogError",
    "CatalogErrorKind",
    "TableMissingError",
    "ReconciliationError",
    "MigrationRowError",
    "SchemaRepairError",
]
