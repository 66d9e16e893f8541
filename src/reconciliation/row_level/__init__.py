"""
Applying diffs to a live table.

- executor: upsert, explicit deletion and the skip/replace failure policy
- repair: missing-column repair and backup-then-rebuild table replacement
"""

from .executor import (
    FailureHandler,
    FailurePolicy,
    ReconcileOptions,
    delete_local_only,
    reconcile,
)
from .repair import repair_columns, replace_table, sync_schema

__all__ = [
    "reconcile",
    "delete_local_only",
    "ReconcileOptions",
    "FailurePolicy",
    "FailureHandler",
    "replace_table",
    "repair_columns",
    "sync_schema",
]
