"""
Unit tests for reconciliation/session.py
"""

from datetime import datetime
from unittest.mock import Mock, patch

import pytest

from fakes import ColumnSpec, FakeConnection, FakeDatabase
from reconciliation import (
    FailurePolicy,
    ReconcileOptions,
    SyncSession,
    SyncSettings,
    TimestampPrecision,
)
from reconciliation.session import NO_PRIMARY_KEY
from utils.connections import ConnectionParams, DatabaseConnectionError
from utils.database_types import DatabaseType


@pytest.fixture
def session(local, production):
    return SyncSession(local, production)


def orders_columns():
    return [ColumnSpec("id", key=True), ColumnSpec("total", "decimal(10,2)")]


class TestSessionLifecycle:
    """Test connection ownership"""

    def test_engines_must_match(self, local):
        with pytest.raises(ValueError, match="must use the same engine"):
            SyncSession(local, FakeConnection(FakeDatabase(DatabaseType.POSTGRESQL)))

    def test_context_manager_closes_both(self, local, production):
        with SyncSession(local, production):
            pass

        assert local.closed
        assert production.closed

    def test_close_on_error(self, local, production):
        with pytest.raises(RuntimeError):
            with SyncSession(local, production):
                raise RuntimeError("boom")

        assert local.closed and production.closed

    def test_production_closed_when_local_close_fails(self, production):
        local = Mock(dialect=DatabaseType.MYSQL)
        local.close.side_effect = DatabaseConnectionError("already gone")

        with pytest.raises(DatabaseConnectionError):
            SyncSession(local, production).close()

        assert production.closed

    @patch("reconciliation.session.connect")
    def test_open_connects_both_sides(self, mock_connect, local, production):
        mock_connect.side_effect = [local, production]
        params = ConnectionParams("localhost", 3306, "app", "secret", "shop")
        settings = SyncSettings(connect_timeout=3)

        session = SyncSession.open(params, params, "mysql", settings)

        assert session.local is local
        assert session.production is production
        assert session.settings is settings
        assert mock_connect.call_args.kwargs == {"connect_timeout": 3}

    @patch("reconciliation.session.connect")
    def test_open_closes_local_when_production_fails(self, mock_connect, local):
        mock_connect.side_effect = [local, DatabaseConnectionError("refused")]
        params = ConnectionParams("localhost", 3306, "app", "secret")

        with pytest.raises(DatabaseConnectionError):
            SyncSession.open(params, params, DatabaseType.MYSQL)

        assert local.closed


class TestCompareTable:
    """Test single-table comparison"""

    def test_compare_customers(self, session):
        comparison = session.compare_table("shop", "customers")

        assert comparison.primary_key == "id"
        assert comparison.source_count == 3
        assert comparison.target_count == 3
        assert comparison.needs_sync
        assert comparison.diff.summary() == {
            "only_in_source": 1,
            "only_in_target": 1,
            "modified": 1,
            "identical": 1,
        }
        assert comparison.columns.all_match

    def test_table_missing_locally(self, production_db, session):
        production_db.add_table("orders", orders_columns(), [{"id": 1, "total": 10}])

        comparison = session.compare_table("shop", "orders")

        assert comparison.only_in_target_side
        assert comparison.source_count == 0
        assert len(comparison.diff.only_in_target) == 1
        assert comparison.columns.missing_in_source == ["id", "total"]

    def test_no_primary_key(self, production_db, local_db, session):
        for db in (production_db, local_db):
            db.add_table("log", [ColumnSpec("message", "text")], [{"message": "x"}])

        comparison = session.compare_table("shop", "log")

        assert comparison.error == NO_PRIMARY_KEY
        assert comparison.diff is None
        assert not comparison.needs_sync
        assert comparison.target_count == 1

    def test_column_differences_reported(self, production_db, session):
        production_db.tables["customers"].columns.append(ColumnSpec("phone", "varchar(20)"))

        comparison = session.compare_table("shop", "customers")

        assert comparison.columns.missing_in_source == ["phone"]

    def test_precision_from_settings(self, local, production, local_db, production_db):
        for db, micros in ((local_db, 400), (production_db, 0)):
            db.add_table(
                "events",
                [ColumnSpec("id", key=True), ColumnSpec("at", "datetime(6)")],
                [{"id": 1, "at": datetime(2024, 1, 1, 0, 0, 0, micros)}],
            )
        settings = SyncSettings(timestamp_precision=TimestampPrecision.MILLISECONDS)

        comparison = SyncSession(local, production, settings).compare_table("shop", "events")

        assert not comparison.needs_sync

    def test_to_dict(self, session):
        data = session.compare_table("shop", "customers").to_dict()

        assert data["table"] == "customers"
        assert data["local_count"] == 3
        assert data["summary"]["modified"] == 1
        assert data["table_missing_locally"] is False


class TestCompareDatabase:
    """Test multi-table comparison"""

    def test_all_production_tables(self, production_db, session):
        production_db.add_table("orders", orders_columns())

        comparisons = session.compare_database("shop")

        assert [c.table_name for c in comparisons] == ["customers", "orders"]

    def test_selected_tables(self, session):
        comparisons = session.compare_database("shop", ["customers"])

        assert len(comparisons) == 1

    def test_failing_table_does_not_stop_others(self, production_db, production, session):
        production_db.add_table("orders", orders_columns())
        production.fail_when(
            lambda sql, params: "INFORMATION_SCHEMA.COLUMNS" in sql and params[1] == "customers"
        )

        comparisons = session.compare_database("shop")

        assert comparisons[0].table_name == "customers"
        assert comparisons[0].error is not None
        assert comparisons[1].error is None

    def test_missing_production_table(self, session):
        comparisons = session.compare_database("shop", ["ghosts"])

        assert "No columns found for table ghosts" in comparisons[0].error

    def test_tables_to_sync(self, production_db, local_db, session):
        for db in (production_db, local_db):
            db.add_table("orders", orders_columns(), [{"id": 1, "total": 5}])

        comparisons = session.compare_database("shop")

        assert [c.table_name for c in SyncSession.tables_to_sync(comparisons)] == ["customers"]


class TestSyncTable:
    """Test applying comparisons to the local side"""

    def test_sync_customers(self, local_db, session):
        comparison = session.compare_table("shop", "customers")

        outcome = session.sync_table("shop", comparison)

        assert outcome.success
        assert outcome.upserted == 2
        assert {r["id"]: r["name"] for r in local_db.rows("customers")} == {
            1: "Ada",
            2: "Grace",
            3: "Linus",
            9: "Local only",
        }
        assert not session.compare_table("shop", "customers").diff.only_in_target

    def test_sync_with_delete(self, local_db, session):
        comparison = session.compare_table("shop", "customers")

        session.sync_table("shop", comparison, ReconcileOptions(delete_local_only=True))

        assert not session.compare_table("shop", "customers").needs_sync

    def test_creates_missing_local_table(self, production_db, local_db, local, session):
        production_db.add_table("orders", orders_columns(), [{"id": 1, "total": 10}])
        comparison = session.compare_table("shop", "orders")

        outcome = session.sync_table("shop", comparison)

        assert outcome.success
        assert local.executed("CREATE TABLE IF NOT EXISTS `shop`.`orders`")
        assert local_db.rows("orders") == [{"id": 1, "total": 10}]

    def test_uncomparable_table(self, session):
        comparison = session.compare_database("shop", ["ghosts"])[0]

        outcome = session.sync_table("shop", comparison)

        assert not outcome.success
        assert outcome.upserted == 0

    def test_replace_uses_production(self, local_db, local, session):
        local.fail_when(lambda sql, params: sql.startswith("INSERT") and params[0] == 2, times=1)
        comparison = session.compare_table("shop", "customers")

        outcome = session.sync_table(
            "shop", comparison, ReconcileOptions(on_failure=FailurePolicy.REPLACE)
        )

        assert outcome.replaced
        assert {r["id"] for r in local_db.rows("customers")} == {1, 2, 3}

    @patch("reconciliation.session.reconcile")
    def test_settings_applied_to_default_options(self, mock_reconcile, local, production):
        settings = SyncSettings(copy_batch_size=50, backup_suffix="bak")
        session = SyncSession(local, production, settings)
        comparison = session.compare_table("shop", "customers")

        session.sync_table("shop", comparison)

        options = mock_reconcile.call_args.args[5]
        assert options.batch_size == 50
        assert options.backup_suffix == "bak"
        assert options.source_connection is production
        assert options.on_failure == FailurePolicy.SKIP

    def test_sync_schema(self, production_db, session, local_db):
        production_db.tables["customers"].columns.append(ColumnSpec("phone", "varchar(20)"))

        results = session.sync_schema("shop", "customers")

        assert [r.column for r in results] == ["phone"]
        assert "phone" in [c.name for c in local_db.tables["customers"].columns]
