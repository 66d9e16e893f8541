"""
Record diff keyed by a single-column primary key.

Both sides are indexed by the canonical form of their key values, so the diff
runs in O(n + m) and keys that differ only in driver representation (``1``
vs ``Decimal("1")``) still match.
"""

import logging
import time
from collections.abc import Mapping, Sequence
from typing import Any

from opentelemetry import trace

from utils.metrics.reconciliation import DIFF_DURATION, DIFF_RECORDS
from utils.tracing import trace_operation

from ..models import DiffResult, ModifiedRecord, TableSnapshot
from ..values import (
    DEFAULT_PRECISION,
    Record,
    TimestampPrecision,
    canonical,
    records_equal,
    to_record,
)

logger = logging.getLogger(__name__)

RecordSource = TableSnapshot | Sequence[Mapping[str, Any]]


def _rows(side: RecordSource) -> list[Record]:
    rows = side.rows if isinstance(side, TableSnapshot) else side
    return [to_record(row) for row in rows]


def _resolve_primary_key(
    source: RecordSource, target: RecordSource, primary_key: str | None
) -> str:
    if primary_key:
        return primary_key
    for side in (target, source):
        if isinstance(side, TableSnapshot) and side.primary_key_column:
            return side.primary_key_column
    raise ValueError("A single-column primary key is required to diff records")


def _index(rows: list[Record], primary_key: str, side: str) -> dict[tuple, Record]:
    indexed: dict[tuple, Record] = {}
    for position, row in enumerate(rows):
        if primary_key not in row:
            raise ValueError(
                f"Row {position} of the {side} side has no primary key column {primary_key!r}"
            )
        # Keys are matched at full precision; duplicate keys: the last row wins
        indexed[canonical(row[primary_key], TimestampPrecision.MICROSECONDS)] = row
    return indexed


def diff_table(
    source: RecordSource,
    target: RecordSource,
    primary_key: str | None = None,
    precision: TimestampPrecision = DEFAULT_PRECISION,
    table_name: str | None = None,
) -> DiffResult:
    """
    Partition two record sets by primary key.

    ``source`` is the side being brought in line (local), ``target`` the
    authoritative side (production). Records whose column sets differ are
    always classified as modified.

    Args:
        source: Snapshot or records of the side to be synced
        target: Snapshot or records of the authoritative side
        primary_key: Key column; defaults to the snapshots' primary key
        precision: Timestamp precision for comparing non-key values; keys
            always match at microsecond precision
        table_name: Name used for metrics and spans

    Returns:
        DiffResult whose four classes partition the union of both key sets

    Raises:
        ValueError: If no primary key is known or a row lacks the key column
    """
    primary_key = _resolve_primary_key(source, target, primary_key)
    if table_name is None:
        table_name = next(
            (s.table_name for s in (target, source) if isinstance(s, TableSnapshot)),
            "unknown",
        )

    with trace_operation(
        "diff_table",
        kind=trace.SpanKind.INTERNAL,
        table=table_name,
        primary_key=primary_key,
    ) as span:
        start = time.perf_counter()

        source_index = _index(_rows(source), primary_key, "source")
        target_index = _index(_rows(target), primary_key, "target")

        result = DiffResult()

        for key, source_record in source_index.items():
            if key not in target_index:
                result.only_in_source.append(source_record)

        for key, target_record in target_index.items():
            source_record = source_index.get(key)
            if source_record is None:
                result.only_in_target.append(target_record)
            elif records_equal(source_record, target_record, precision):
                result.identical.append(target_record)
            else:
                result.modified.append(ModifiedRecord(source=source_record, target=target_record))

        DIFF_DURATION.labels(table=table_name).observe(time.perf_counter() - start)
        summary = result.summary()
        for classification, count in summary.items():
            if count:
                DIFF_RECORDS.labels(table=table_name, classification=classification).inc(count)
            span.set_attribute(classification, count)

        logger.info(
            f"Diff of {table_name}: {summary['only_in_source']} only in source, "
            f"{summary['only_in_target']} only in target, {summary['modified']} modified, "
            f"{summary['identical']} identical"
        )
        return result
