"""
Metrics for table comparison and reconciliation.

Collectors are module-level and registered once; nothing here starts an
HTTP exporter.
"""

from prometheus_client import Counter, Histogram

from .registry import get_or_create_metric

DIFF_RECORDS = get_or_create_metric(
    lambda: Counter(
        "tablesync_diff_records_total",
        "Records classified by the record diff",
        ["table", "classification"],
    ),
    "tablesync_diff_records_total",
)

DIFF_DURATION = get_or_create_metric(
    lambda: Histogram(
        "tablesync_diff_seconds",
        "Time to diff two record sets",
        ["table"],
        buckets=[0.01, 0.05, 0.1, 0.5, 1, 5, 10, 30, 60],
    ),
    "tablesync_diff_seconds",
)

RECORDS_UPSERTED = get_or_create_metric(
    lambda: Counter(
        "tablesync_upserted_records_total",
        "Records written by reconciliation upserts",
        ["table"],
    ),
    "tablesync_upserted_records_total",
)

RECORDS_DELETED = get_or_create_metric(
    lambda: Counter(
        "tablesync_deleted_records_total",
        "Records deleted because they only existed on the sync side",
        ["table"],
    ),
    "tablesync_deleted_records_total",
)

RECONCILIATION_OUTCOMES = get_or_create_metric(
    lambda: Counter(
        "tablesync_reconciliation_outcomes_total",
        "Reconciliation runs by result",
        ["table", "status"],
    ),
    "tablesync_reconciliation_outcomes_total",
)

RECONCILIATION_DURATION = get_or_create_metric(
    lambda: Histogram(
        "tablesync_reconciliation_seconds",
        "Time to apply a diff to the sync side",
        ["table"],
        buckets=[0.1, 0.5, 1, 5, 10, 30, 60, 300, 600],
    ),
    "tablesync_reconciliation_seconds",
)

TABLE_REPLACEMENTS = get_or_create_metric(
    lambda: Counter(
        "tablesync_table_replacements_total",
        "Whole-table replacements by result",
        ["table", "status"],
    ),
    "tablesync_table_replacements_total",
)

COLUMNS_ADDED = get_or_create_metric(
    lambda: Counter(
        "tablesync_columns_added_total",
        "Columns added by schema repair",
        ["table", "status"],
    ),
    "tablesync_columns_added_total",
)
