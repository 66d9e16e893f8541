"""
Pytest configuration and fixtures for tablesync tests.
Database access is replaced by the in-memory fakes in tests/fakes.py.
"""

import os

import pytest

from fakes import ColumnSpec, FakeConnection, FakeDatabase
from utils.database_types import DatabaseType


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "property: mark test as property-based test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


@pytest.fixture(autouse=True)
def clear_sync_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep settings tests independent of the caller's environment."""
    for key in list(os.environ):
        if key.startswith("SYNC_") or key in ("OTLP_ENDPOINT", "TRACE_CONSOLE"):
            monkeypatch.delenv(key, raising=False)


def customers_columns() -> list[ColumnSpec]:
    return [
        ColumnSpec("id", "int", nullable=False, extra="auto_increment", key=True),
        ColumnSpec("name", "varchar(100)", nullable=False),
        ColumnSpec("email", "varchar(255)"),
    ]


@pytest.fixture
def production_db() -> FakeDatabase:
    db = FakeDatabase(DatabaseType.MYSQL)
    db.add_table(
        "customers",
        customers_columns(),
        [
            {"id": 1, "name": "Ada", "email": "ada@example.com"},
            {"id": 2, "name": "Grace", "email": "grace@example.com"},
            {"id": 3, "name": "Linus", "email": None},
        ],
    )
    return db


@pytest.fixture
def local_db(production_db: FakeDatabase) -> FakeDatabase:
    db = FakeDatabase(DatabaseType.MYSQL)
    db.ddl_source = production_db
    db.add_table(
        "customers",
        customers_columns(),
        [
            {"id": 1, "name": "Ada", "email": "ada@example.com"},
            {"id": 2, "name": "Grace H.", "email": "grace@example.com"},
            {"id": 9, "name": "Local only", "email": None},
        ],
    )
    return db


@pytest.fixture
def production(production_db: FakeDatabase) -> FakeConnection:
    return FakeConnection(production_db)


@pytest.fixture
def local(local_db: FakeDatabase) -> FakeConnection:
    return FakeConnection(local_db)
