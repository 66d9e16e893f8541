"""
In-memory stand-ins for MySQL and PostgreSQL connections.

``FakeConnection`` answers the catalog queries issued by the introspectors
and applies the INSERT / upsert / DELETE / RENAME / CREATE / ALTER / DROP
statements built by ``QueryBuilder`` (plus the constraint and index statements
of a PostgreSQL rebuild) to a ``FakeDatabase``. Failures are
injected with ``fail_when``.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable

from utils.connections import DatabaseConnectionError, QueryError
from utils.database_types import DatabaseType

QUOTED = r'[`"]([^`"]+)[`"]'
TABLE_REF = rf"(?:{QUOTED}\.)?{QUOTED}"


@dataclass
class ColumnSpec:
    name: str
    type: str = "int"
    nullable: bool = True
    default: str | None = None
    extra: str = ""
    key: bool = False


@dataclass
class FakeTable:
    name: str
    columns: list[ColumnSpec]
    rows: list[dict[str, Any]] = field(default_factory=list)
    # Constraint and index definitions as pg_get_constraintdef / pg_indexes report them
    constraints: list[str] = field(default_factory=list)
    indexes: list[str] = field(default_factory=list)

    @property
    def key_columns(self) -> list[str]:
        return [c.name for c in self.columns if c.key]

    def find(self, key: str, value: Any) -> dict[str, Any] | None:
        for row in self.rows:
            if row.get(key) == value:
                return row
        return None


class FakeDatabase:
    """A single database (MySQL) or schema (PostgreSQL) held in memory."""

    def __init__(self, dialect: DatabaseType = DatabaseType.MYSQL):
        self.dialect = dialect
        self.tables: dict[str, FakeTable] = {}
        # Where CREATE TABLE statements take their column layout from
        self.ddl_source: "FakeDatabase | None" = None

    def add_table(
        self, name: str, columns: list[ColumnSpec], rows: list[dict[str, Any]] | None = None
    ) -> FakeTable:
        table = FakeTable(name, columns, [dict(r) for r in rows or []])
        self.tables[name] = table
        return table

    def rows(self, name: str) -> list[dict[str, Any]]:
        return self.tables[name].rows


class FakeConnection:
    """Connection double implementing the DatabaseConnection surface."""

    def __init__(self, database: FakeDatabase | None = None, dialect: DatabaseType | None = None):
        self.database = database or FakeDatabase(dialect or DatabaseType.MYSQL)
        self.db_type = dialect or self.database.dialect
        self.statements: list[tuple[str, tuple]] = []
        self.closed = False
        self._failures: list[list] = []

    @property
    def dialect(self) -> DatabaseType:
        return self.db_type

    def fail_when(
        self,
        needle: str | Callable[[str, tuple], bool],
        error: BaseException | None = None,
        times: int | None = None,
        after: int = 0,
    ) -> "FakeConnection":
        """
        Raise ``error`` for statements containing ``needle``.

        ``after`` matching statements succeed first; ``times`` limits how
        often the failure fires.
        """
        error = error or QueryError("injected failure", code=1064)
        self._failures.append([needle, error, times, after])
        return self

    def _maybe_fail(self, sql: str, params: tuple) -> None:
        for failure in self._failures:
            needle, error, times, after = failure
            matched = needle(sql, params) if callable(needle) else needle in sql
            if not matched:
                continue
            if after > 0:
                failure[3] -= 1
                continue
            if times is not None:
                if times <= 0:
                    continue
                failure[2] -= 1
            raise error

    def _check_open(self) -> None:
        if self.closed:
            raise DatabaseConnectionError("connection is closed")

    # DatabaseConnection surface

    def query(self, sql: str, params=None) -> list[dict[str, Any]]:
        self._check_open()
        params = tuple(params) if params else ()
        self.statements.append((sql, params))
        self._maybe_fail(sql, params)
        result = self._dispatch(sql, params)
        return result if isinstance(result, list) else []

    def execute(self, sql: str, params=None) -> int:
        self._check_open()
        params = tuple(params) if params else ()
        self.statements.append((sql, params))
        self._maybe_fail(sql, params)
        result = self._dispatch(sql, params)
        return result if isinstance(result, int) else 0

    def execute_many(self, sql: str, rows) -> int:
        count = 0
        for row in rows:
            self.execute(sql, row)
            count += 1
        return count

    def close(self) -> None:
        self.closed = True

    def executed(self, prefix: str) -> list[tuple[str, tuple]]:
        """Statements whose normalized text starts with ``prefix``."""
        return [(s, p) for s, p in self.statements if " ".join(s.split()).startswith(prefix)]

    # Statement handling

    def _table(self, name: str) -> FakeTable:
        table = self.database.tables.get(name)
        if table is None:
            if self.db_type == DatabaseType.MYSQL:
                raise QueryError(f"Table '{name}' doesn't exist", code=1146, table_missing=True)
            raise QueryError(f'relation "{name}" does not exist', code="42P01", table_missing=True)
        return table

    def _dispatch(self, sql: str, params: tuple) -> Any:
        text = " ".join(sql.split())

        if "pg_catalog.pg_indexes" in text:
            table = self.database.tables.get(params[1])
            return [
                {"name": f"{params[1]}_idx{i}", "definition": d}
                for i, d in enumerate(table.indexes if table else [])
            ]
        if "pg_catalog.pg_constraint" in text:
            table = self.database.tables.get(params[1])
            return [
                {"name": f"{params[1]}_con{i}", "definition": d}
                for i, d in enumerate(table.constraints if table else [])
            ]
        if "INFORMATION_SCHEMA.COLUMNS" in text or "pg_catalog.pg_attribute" in text:
            return self._describe(params[1])
        if "INFORMATION_SCHEMA.TABLES" in text or "pg_catalog.pg_class" in text:
            return [{"table_name": name} for name in sorted(self.database.tables)]
        if text.startswith("SHOW DATABASES"):
            return [{"Database": name} for name in ("information_schema", "mysql", "shop")]
        if "pg_catalog.pg_database" in text:
            return [{"datname": name} for name in ("postgres", "shop")]
        if text.startswith("SELECT 1"):
            return [{"1": 1}]
        if text.startswith("SELECT setval"):
            return [{"setval": 1}]

        match = re.match(rf"SHOW CREATE TABLE {TABLE_REF}", text)
        if match:
            return self._show_create(match.group(2))

        match = re.match(rf"SELECT COUNT\(\*\) AS row_count FROM {TABLE_REF}", text)
        if match:
            return [{"row_count": len(self._table(match.group(2)).rows)}]

        match = re.match(rf"SELECT \* FROM {TABLE_REF}", text)
        if match:
            return [dict(row) for row in self._table(match.group(2)).rows]

        match = re.match(rf"INSERT INTO {TABLE_REF} \((.*?)\) VALUES", text)
        if match:
            columns = re.findall(QUOTED, match.group(3))
            upsert = "ON DUPLICATE KEY UPDATE" in text or "ON CONFLICT" in text
            return self._insert(match.group(2), dict(zip(columns, params)), upsert)

        match = re.match(rf"DELETE FROM {TABLE_REF} WHERE {QUOTED} = ", text)
        if match:
            table = self._table(match.group(2))
            before = len(table.rows)
            table.rows = [r for r in table.rows if r.get(match.group(3)) != params[0]]
            return before - len(table.rows)

        match = re.match(rf"RENAME TABLE {TABLE_REF} TO {TABLE_REF}", text) or re.match(
            rf"ALTER TABLE {TABLE_REF} RENAME TO {TABLE_REF}", text
        )
        if match:
            old, new = match.group(2), match.group(4)
            table = self._table(old)
            del self.database.tables[old]
            table.name = new
            self.database.tables[new] = table
            return 0

        match = re.match(rf"ALTER TABLE {TABLE_REF} ADD COLUMN {QUOTED} (.+)", text)
        if match:
            table = self._table(match.group(2))
            table.columns.append(ColumnSpec(match.group(3), match.group(4).split()[0]))
            return 0

        match = re.match(rf"ALTER TABLE {TABLE_REF} ADD (.+)", text)
        if match:
            self._table(match.group(2)).constraints.append(match.group(3))
            return 0

        match = re.match(r'CREATE (?:UNIQUE )?INDEX ON (?:ONLY )?(?:"?[\w$]+"?\.)?"?([\w$]+)"? ', text)
        if match:
            self._table(match.group(1)).indexes.append(text)
            return 0

        match = re.match(rf"CREATE TABLE (?:IF NOT EXISTS )?{TABLE_REF}", text)
        if match:
            name = match.group(2)
            if name in self.database.tables:
                if "IF NOT EXISTS" in text:
                    return 0
                raise QueryError(f'relation "{name}" already exists', code="42P07")
            source = self.database.ddl_source
            if source is not None and name in source.tables:
                columns = [ColumnSpec(**vars(c)) for c in source.tables[name].columns]
            else:
                columns = [
                    ColumnSpec(col, key="PRIMARY KEY" in rest or "SERIAL" in rest)
                    for col, rest in re.findall(r'"([^"]+)" ([^,]+)', text[match.end():])
                ]
            self.database.add_table(name, columns)
            return 0

        match = re.match(rf"DROP TABLE IF EXISTS {TABLE_REF}", text)
        if match:
            self.database.tables.pop(match.group(2), None)
            return 0

        raise AssertionError(f"FakeConnection cannot handle: {text}")

    def _describe(self, name: str) -> list[dict[str, Any]]:
        table = self.database.tables.get(name)
        if table is None:
            return []
        if self.db_type == DatabaseType.MYSQL:
            return [
                {
                    "column_name": c.name,
                    "column_type": c.type,
                    "is_nullable": "YES" if c.nullable else "NO",
                    "column_default": c.default,
                    "extra": c.extra,
                    "column_key": "PRI" if c.key else "",
                }
                for c in table.columns
            ]
        return [
            {
                "column_name": c.name,
                "column_type": c.type,
                "is_nullable": c.nullable,
                "column_default": c.default,
                "identity": "d" if "identity" in c.extra else "",
                "is_primary": c.key,
            }
            for c in table.columns
        ]

    def _show_create(self, name: str) -> list[dict[str, Any]]:
        table = self._table(name)
        body = ",\n  ".join(f"`{c.name}` {c.type}" for c in table.columns)
        keys = table.key_columns
        if keys:
            body += ",\n  PRIMARY KEY (" + ", ".join(f"`{k}`" for k in keys) + ")"
        return [{"Table": name, "Create Table": f"CREATE TABLE `{name}` (\n  {body}\n) ENGINE=InnoDB"}]

    def _insert(self, name: str, row: dict[str, Any], upsert: bool) -> int:
        table = self._table(name)
        known = {c.name for c in table.columns}
        unknown = [c for c in row if c not in known]
        if unknown:
            raise QueryError(f"Unknown column '{unknown[0]}' in 'field list'", code=1054)

        keys = table.key_columns
        if len(keys) == 1 and keys[0] in row:
            existing = table.find(keys[0], row[keys[0]])
            if existing is not None:
                if not upsert:
                    raise QueryError(f"Duplicate entry '{row[keys[0]]}' for key 'PRIMARY'", code=1062)
                existing.update(row)
                return 2
        table.rows.append({c.name: row.get(c.name) for c in table.columns})
        return 1
