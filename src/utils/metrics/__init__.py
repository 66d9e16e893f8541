"""
Prometheus collectors for diff, reconciliation and migration runs.

Usage:
    from utils.metrics import get_or_create_metric
    from utils.metrics.reconciliation import RECORDS_UPSERTED

    RECORDS_UPSERTED.labels(table="orders").inc()
"""

from .registry import get_or_create_metric

__all__ = ["get_or_create_metric"]
