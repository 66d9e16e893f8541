"""
Result and metadata types shared by the catalog, diff and executor.

Everything here is created per call and discarded; none of it holds a
connection.
"""

from dataclasses import dataclass, field
from typing import Any

from .values import Record


@dataclass(frozen=True)
class ColumnDescriptor:
    """One column as reported by the engine catalog."""

    name: str
    native_type: str
    nullable: bool = True
    default_value: str | None = None
    is_auto_increment: bool = False
    is_primary_key_member: bool = False
    extra: str = ""


@dataclass
class TableSnapshot:
    """Columns, primary key and every row of one table at one instant."""

    table_name: str
    columns: list[ColumnDescriptor]
    primary_key_column: str | None
    rows: list[Record] = field(default_factory=list)

    @property
    def diffable(self) -> bool:
        return self.primary_key_column is not None

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def row_count(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class ModifiedRecord:
    """A key present on both sides with differing contents."""

    source: Record
    target: Record


@dataclass
class DiffResult:
    """
    Partition of two record sets by primary key.

    The key sets of the four lists are pairwise disjoint and together cover
    every key seen on either side. ``identical`` holds the target-side record.
    """

    only_in_source: list[Record] = field(default_factory=list)
    only_in_target: list[Record] = field(default_factory=list)
    modified: list[ModifiedRecord] = field(default_factory=list)
    identical: list[Record] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.only_in_source or self.only_in_target or self.modified)

    def records_to_upsert(self) -> list[Record]:
        """Records the source side needs to match the target side."""
        return list(self.only_in_target) + [m.target for m in self.modified]

    def records_to_delete(self) -> list[Record]:
        """Records that exist only on the source side."""
        return list(self.only_in_source)

    def summary(self) -> dict[str, int]:
        return {
            "only_in_source": len(self.only_in_source),
            "only_in_target": len(self.only_in_target),
            "modified": len(self.modified),
            "identical": len(self.identical),
        }


@dataclass(frozen=True)
class ColumnConsistencyResult:
    missing_in_source: list[str]
    missing_in_target: list[str]

    @property
    def all_match(self) -> bool:
        return not self.missing_in_source and not self.missing_in_target


@dataclass
class TableReconciliationOutcome:
    """Result of applying a diff to one table."""

    table_name: str
    upserted: int = 0
    deleted: int = 0
    replaced: bool = False
    error: str | None = None
    backup_name: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str:
        if self.replaced:
            return (
                f"Table {self.table_name} replaced from the authoritative side "
                f"(previous data kept in {self.backup_name})"
            )
        if self.error:
            return (
                f"Failed to sync {self.table_name} after {self.upserted} upserted, "
                f"{self.deleted} deleted: {self.error}"
            )
        text = f"Synced {self.upserted} record(s) into {self.table_name}"
        if self.deleted:
            text += f", deleted {self.deleted}"
        return text

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table_name,
            "success": self.success,
            "upserted": self.upserted,
            "deleted": self.deleted,
            "replaced": self.replaced,
            "backup_name": self.backup_name,
            "error": self.error,
            "message": self.message,
        }


@dataclass(frozen=True)
class ColumnRepairResult:
    column: str
    added: bool
    error: str | None = None


@dataclass
class ReplaceOutcome:
    """Result of renaming a table to a backup and rebuilding it from the source."""

    table_name: str
    backup_name: str | None
    success: bool
    error: str | None = None
    rows_copied: int = 0
    warnings: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.success:
            text = (
                f"Table {self.table_name} replaced ({self.rows_copied} rows); "
                f"backup saved as {self.backup_name}"
            )
            if self.warnings:
                text += f"; {len(self.warnings)} warning(s): " + "; ".join(self.warnings)
            return text
        return self.error or f"Replacement of {self.table_name} failed"


@dataclass
class TableComparison:
    """Per-table result of comparing the local and production sides."""

    table_name: str
    primary_key: str | None = None
    source_count: int = 0
    target_count: int = 0
    diff: DiffResult | None = None
    columns: ColumnConsistencyResult | None = None
    error: str | None = None
    only_in_target_side: bool = False

    @property
    def needs_sync(self) -> bool:
        if self.error is not None or self.diff is None:
            return False
        return self.diff.has_changes

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table_name,
            "primary_key": self.primary_key,
            "local_count": self.source_count,
            "production_count": self.target_count,
            "summary": self.diff.summary() if self.diff else None,
            "missing_locally": self.columns.missing_in_source if self.columns else [],
            "missing_in_production": self.columns.missing_in_target if self.columns else [],
            "table_missing_locally": self.only_in_target_side,
            "error": self.error,
        }
