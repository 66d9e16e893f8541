"""Migration plans and outcomes."""

from dataclasses import dataclass, field
from enum import Enum

from reconciliation.errors import MigrationRowError


class MigrationState(str, Enum):
    """How far a table migration got. States only ever advance."""

    NOT_STARTED = "not_started"
    STRUCTURE_READ = "structure_read"
    TARGET_DROPPED = "target_dropped"
    TARGET_CREATED = "target_created"
    DATA_COPIED = "data_copied"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class MappedColumn:
    name: str
    source_type: str
    target_type: str


@dataclass
class MigrationPlan:
    """What migrating a table would create, computed without writing anything."""

    table_name: str
    mapped_columns: list[MappedColumn]
    create_statement: str


@dataclass
class MigrationOutcome:
    table_name: str
    mapped_columns: list[MappedColumn] = field(default_factory=list)
    create_statement: str | None = None
    rows_attempted: int = 0
    rows_inserted: int = 0
    error: str | None = None
    state: MigrationState = MigrationState.NOT_STARTED
    # Last state reached before a failure
    reached: MigrationState = MigrationState.NOT_STARTED
    failures: list[MigrationRowError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state == MigrationState.DONE

    @property
    def partial(self) -> bool:
        return self.success and bool(self.failures)

    @property
    def rows_failed(self) -> int:
        return len(self.failures)

    @property
    def message(self) -> str:
        if not self.success:
            return self.error or f"Failed to migrate table {self.table_name}"
        if self.rows_attempted == 0:
            return f"Table {self.table_name} created (0 records)"
        if self.failures:
            return (
                f"Table {self.table_name} migrated with {self.rows_failed} failed row(s) "
                f"({self.rows_inserted} of {self.rows_attempted} inserted)"
            )
        return f"Table {self.table_name} migrated successfully ({self.rows_inserted} records)"

    def advance(self, state: MigrationState) -> None:
        self.state = state
        self.reached = state

    def fail(self, error: str) -> None:
        self.error = error
        self.state = MigrationState.FAILED
