"""
Unit tests for reconciliation/compare (record diff and column consistency)
"""

from datetime import datetime
from decimal import Decimal

import pytest

from reconciliation.compare import check_columns, diff_table
from reconciliation.models import ColumnDescriptor, TableSnapshot
from reconciliation.values import TimestampPrecision, to_record


def ids(records):
    return sorted(r["id"].to_native() for r in records)


class TestDiffTable:
    """Test partitioning of two record sets by primary key"""

    def test_identical_tables(self):
        rows = [{"id": 1, "name": "Ada"}, {"id": 2, "name": "Grace"}]

        result = diff_table(rows, [dict(r) for r in rows], "id")

        assert not result.has_changes
        assert ids(result.identical) == [1, 2]
        assert result.records_to_upsert() == []
        assert result.records_to_delete() == []

    def test_mixed_changes(self):
        local = [
            {"id": 1, "name": "Ada", "email": None},
            {"id": 2, "name": "Grace H.", "email": None},
            {"id": 9, "name": "Local only", "email": None},
        ]
        production = [
            {"id": 1, "name": "Ada", "email": None},
            {"id": 2, "name": "Grace", "email": None},
            {"id": 3, "name": "Linus", "email": None},
        ]

        result = diff_table(local, production, "id")

        assert ids(result.only_in_source) == [9]
        assert ids(result.only_in_target) == [3]
        assert [m.source["name"].to_native() for m in result.modified] == ["Grace H."]
        assert ids(result.identical) == [1]
        assert result.summary() == {
            "only_in_source": 1,
            "only_in_target": 1,
            "modified": 1,
            "identical": 1,
        }

    def test_records_to_upsert_uses_target_values(self):
        result = diff_table(
            [{"id": 2, "name": "old"}],
            [{"id": 2, "name": "new"}, {"id": 3, "name": "added"}],
            "id",
        )

        upserts = {r["id"].to_native(): r["name"].to_native() for r in result.records_to_upsert()}
        assert upserts == {2: "new", 3: "added"}

    def test_empty_source(self):
        result = diff_table([], [{"id": 1}, {"id": 2}], "id")

        assert ids(result.only_in_target) == [1, 2]
        assert result.only_in_source == []

    def test_both_sides_empty(self):
        result = diff_table([], [], "id")

        assert not result.has_changes
        assert result.summary() == dict.fromkeys(result.summary(), 0)

    def test_keys_match_across_representations(self):
        result = diff_table([{"id": Decimal("1"), "v": 1.0}], [{"id": 1, "v": Decimal("1.00")}], "id")

        assert len(result.identical) == 1

    def test_different_column_sets_are_modified(self):
        result = diff_table([{"id": 1, "name": "Ada"}], [{"id": 1, "name": "Ada", "email": None}], "id")

        assert len(result.modified) == 1

    def test_duplicate_keys_last_row_wins(self):
        result = diff_table(
            [{"id": 1, "name": "first"}, {"id": 1, "name": "second"}],
            [{"id": 1, "name": "second"}],
            "id",
        )

        assert len(result.identical) == 1
        assert result.modified == []

    def test_timestamp_precision(self):
        local = [{"id": 1, "at": datetime(2024, 1, 1, 0, 0, 0, 999)}]
        production = [{"id": 1, "at": datetime(2024, 1, 1)}]

        assert len(diff_table(local, production, "id").modified) == 1
        assert len(
            diff_table(local, production, "id", precision=TimestampPrecision.MILLISECONDS).identical
        ) == 1

    def test_timestamp_keys_not_merged_by_coarse_precision(self):
        local = [
            {"at": datetime(2024, 1, 1, 0, 0, 0, 1), "v": "a"},
            {"at": datetime(2024, 1, 1, 0, 0, 0, 2), "v": "b"},
        ]

        result = diff_table(local, [], "at", precision=TimestampPrecision.SECONDS)

        assert len(result.only_in_source) == 2

    def test_timestamp_keys_matched_exactly(self):
        local = [{"at": datetime(2024, 1, 1, 0, 0, 0, 1), "v": "a"}]
        production = [{"at": datetime(2024, 1, 1), "v": "a"}]

        result = diff_table(local, production, "at", precision=TimestampPrecision.SECONDS)

        assert len(result.only_in_source) == 1
        assert len(result.only_in_target) == 1
        assert result.identical == []

    def test_primary_key_taken_from_snapshot(self):
        columns = [ColumnDescriptor("code", "char(2)", is_primary_key_member=True)]
        source = TableSnapshot("countries", columns, "code", [to_record({"code": "FR"})])
        target = TableSnapshot("countries", columns, "code", [to_record({"code": "DE"})])

        result = diff_table(source, target)

        assert [r["code"].to_native() for r in result.only_in_source] == ["FR"]
        assert [r["code"].to_native() for r in result.only_in_target] == ["DE"]

    def test_missing_primary_key(self):
        with pytest.raises(ValueError, match="primary key is required"):
            diff_table([{"id": 1}], [{"id": 1}])

    def test_row_without_key_column(self):
        with pytest.raises(ValueError, match="no primary key column"):
            diff_table([{"name": "x"}], [], "id")


class TestCheckColumns:
    """Test column-name consistency"""

    def test_all_match(self):
        result = check_columns(["id", "name"], ["name", "id"])

        assert result.all_match
        assert result.missing_in_source == []
        assert result.missing_in_target == []

    def test_missing_on_each_side(self):
        result = check_columns(["id", "name", "legacy"], ["id", "name", "email", "phone"])

        assert result.missing_in_source == ["email", "phone"]
        assert result.missing_in_target == ["legacy"]
        assert not result.all_match

    def test_case_sensitive(self):
        result = check_columns(["Name"], ["name"])

        assert result.missing_in_source == ["name"]
        assert result.missing_in_target == ["Name"]

    def test_duplicates_collapsed(self):
        result = check_columns(["id", "id"], ["id", "email", "email"])

        assert result.missing_in_source == ["email"]

    def test_accepts_descriptors(self):
        result = check_columns(
            [ColumnDescriptor("id", "int")],
            [ColumnDescriptor("id", "int"), ColumnDescriptor("email", "varchar(255)")],
        )

        assert result.missing_in_source == ["email"]
