"""Column-name consistency between two versions of a table."""

from collections.abc import Iterable

from ..models import ColumnConsistencyResult, ColumnDescriptor


def _names(columns: Iterable[str | ColumnDescriptor]) -> list[str]:
    seen: dict[str, None] = {}
    for column in columns:
        name = column.name if isinstance(column, ColumnDescriptor) else column
        seen.setdefault(name, None)
    return list(seen)


def check_columns(
    source_columns: Iterable[str | ColumnDescriptor],
    target_columns: Iterable[str | ColumnDescriptor],
) -> ColumnConsistencyResult:
    """
    Case-sensitive set difference of two column lists.

    ``missing_in_source`` holds target columns the source lacks and
    ``missing_in_target`` the reverse, each in first-seen order with
    duplicates collapsed.
    """
    source = _names(source_columns)
    target = _names(target_columns)
    source_set, target_set = set(source), set(target)
    return ColumnConsistencyResult(
        missing_in_source=[name for name in target if name not in source_set],
        missing_in_target=[name for name in source if name not in target_set],
    )
