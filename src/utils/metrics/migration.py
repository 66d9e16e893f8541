"""Metrics for cross-engine table migration."""

from prometheus_client import Counter, Histogram

from .registry import get_or_create_metric

MIGRATION_ROWS = get_or_create_metric(
    lambda: Counter(
        "tablesync_migration_rows_total",
        "Rows processed by table migration",
        ["table", "result"],
    ),
    "tablesync_migration_rows_total",
)

MIGRATION_TABLES = get_or_create_metric(
    lambda: Counter(
        "tablesync_migration_tables_total",
        "Tables migrated by final state",
        ["state"],
    ),
    "tablesync_migration_tables_total",
)

MIGRATION_DURATION = get_or_create_metric(
    lambda: Histogram(
        "tablesync_migration_seconds",
        "Time to migrate one table",
        ["table"],
        buckets=[0.1, 0.5, 1, 5, 10, 30, 60, 300, 600, 1800],
    ),
    "tablesync_migration_seconds",
)
