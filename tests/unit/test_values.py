"""
Unit tests for reconciliation/values.py

Covers value tagging at the driver boundary and the canonical equality rule
used by the record diff.
"""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from reconciliation.values import (
    TimestampPrecision,
    Value,
    ValueKind,
    canonical,
    format_clock,
    record_to_native,
    records_equal,
    to_record,
    values_equal,
)


def eq(left, right, precision=TimestampPrecision.MICROSECONDS):
    return values_equal(Value.from_native(left), Value.from_native(right), precision)


class TestValueFromNative:
    """Test tagging of driver values"""

    def test_none_is_null(self):
        value = Value.from_native(None)

        assert value.kind == ValueKind.NULL
        assert value.is_null

    def test_bool_tagged_before_int(self):
        assert Value.from_native(True).kind == ValueKind.BOOL
        assert Value.from_native(1).kind == ValueKind.NUMBER

    def test_numbers(self):
        for raw in (1, 1.5, Decimal("2.50")):
            assert Value.from_native(raw).kind == ValueKind.NUMBER

    def test_binary_types_become_bytes(self):
        for raw in (b"\x00\x01", bytearray(b"\x00\x01"), memoryview(b"\x00\x01")):
            value = Value.from_native(raw)
            assert value.kind == ValueKind.BYTES
            assert value.payload == b"\x00\x01"

    def test_temporal_types(self):
        for raw in (datetime(2024, 1, 1), date(2024, 1, 1), time(12, 0), timedelta(hours=1)):
            assert Value.from_native(raw).kind == ValueKind.TIMESTAMP

    def test_json_documents_are_compact_sorted_strings(self):
        value = Value.from_native({"b": 1, "a": [1, 2]})

        assert value.kind == ValueKind.STRING
        assert value.payload == '{"a":[1,2],"b":1}'

    def test_uuid_becomes_string(self):
        raw = UUID("12345678-1234-5678-1234-567812345678")

        assert Value.from_native(raw) == Value(ValueKind.STRING, str(raw))

    def test_already_tagged_value_is_returned_unchanged(self):
        value = Value.from_native("x")

        assert Value.from_native(value) is value

    def test_to_native_returns_payload(self):
        assert Value.from_native(Decimal("1.10")).to_native() == Decimal("1.10")
        assert Value.null().to_native() is None


class TestRecords:
    """Test record conversion helpers"""

    def test_to_record_keeps_column_order(self):
        record = to_record({"id": 1, "name": "Ada", "email": None})

        assert list(record) == ["id", "name", "email"]
        assert record["email"].is_null

    def test_record_to_native(self):
        row = {"id": 1, "name": "Ada"}

        assert record_to_native(to_record(row)) == row


class TestCanonicalEquality:
    """Test the cross-engine equality rule"""

    def test_null_equals_only_null(self):
        assert eq(None, None)
        assert not eq(None, "")
        assert not eq(None, 0)
        assert not eq("", None)

    def test_numeric_representations_are_equal(self):
        assert eq(1, Decimal("1.00"))
        assert eq(1.0, 1)
        assert eq(Decimal("10.5"), 10.5)
        assert not eq(1, 2)

    def test_bool_equals_zero_and_one(self):
        assert eq(True, 1)
        assert eq(False, Decimal("0"))
        assert not eq(True, 0)

    def test_numeric_string_equals_number(self):
        assert eq("42.0", 42)
        assert eq(Decimal("3.14"), "3.14")
        assert not eq("42abc", 42)
        assert not eq("NaN", Decimal("NaN"))

    def test_non_numeric_strings_compare_exactly(self):
        assert eq("Ada", "Ada")
        assert not eq("Ada", "ada")
        assert not eq("Ada", "Ada ")

    def test_nan_equals_nan(self):
        assert eq(float("nan"), Decimal("NaN"))
        assert not eq(float("inf"), float("-inf"))

    def test_bytes(self):
        assert eq(b"\x01", bytearray(b"\x01"))
        assert not eq(b"\x01", b"\x02")

    def test_aware_timestamps_normalized_to_utc(self):
        aware = datetime(2024, 1, 1, 13, 0, tzinfo=timezone(timedelta(hours=1)))
        naive = datetime(2024, 1, 1, 12, 0)

        assert eq(aware, naive)

    def test_timestamp_precision(self):
        left = datetime(2024, 1, 1, 12, 0, 0, 123456)
        right = datetime(2024, 1, 1, 12, 0, 0, 123000)

        assert not eq(left, right)
        assert eq(left, right, TimestampPrecision.MILLISECONDS)
        assert eq(left, datetime(2024, 1, 1, 12, 0, 0), TimestampPrecision.SECONDS)

    def test_mysql_time_equals_time_of_day(self):
        assert eq(timedelta(hours=9, minutes=30), time(9, 30))
        assert not eq(timedelta(hours=9), time(9, 30))

    def test_date_is_not_datetime(self):
        assert not eq(date(2024, 1, 1), datetime(2024, 1, 1))

    def test_canonical_forms_are_hashable(self):
        forms = {
            canonical(Value.from_native(raw))
            for raw in (None, 1, Decimal("1.0"), "a", b"a", datetime(2024, 1, 1), time(1, 2))
        }

        # 1 and Decimal("1.0") collapse into one form
        assert len(forms) == 6


class TestRecordsEqual:
    """Test whole-record comparison"""

    def test_column_order_is_ignored(self):
        left = to_record({"id": 1, "name": "Ada"})
        right = to_record({"name": "Ada", "id": Decimal("1")})

        assert records_equal(left, right)

    def test_different_column_sets_are_never_equal(self):
        left = to_record({"id": 1, "name": "Ada"})
        right = to_record({"id": 1, "name": "Ada", "email": None})

        assert not records_equal(left, right)

    def test_single_differing_value(self):
        assert not records_equal(to_record({"id": 1, "n": "a"}), to_record({"id": 1, "n": "b"}))


class TestFormatClock:
    """Test clock rendering"""

    def test_time_of_day(self):
        assert format_clock(time(7, 5, 3)) == "07:05:03"

    def test_fraction(self):
        assert format_clock(time(7, 5, 3, 120)) == "07:05:03.000120"

    def test_interval_beyond_a_day(self):
        assert format_clock(timedelta(hours=30, minutes=1)) == "30:01:00"

    def test_negative_interval(self):
        assert format_clock(-timedelta(hours=1)) == "-01:00:00"

    def test_millisecond_precision(self):
        assert format_clock(time(0, 0, 0, 123456), TimestampPrecision.MILLISECONDS) == "00:00:00.123000"


class TestTimestampPrecision:
    """Test precision name parsing"""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("microseconds", TimestampPrecision.MICROSECONDS),
            ("ms", TimestampPrecision.MILLISECONDS),
            (" Seconds ", TimestampPrecision.SECONDS),
            ("s", TimestampPrecision.SECONDS),
        ],
    )
    def test_from_name(self, name, expected):
        assert TimestampPrecision.from_name(name) == expected

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unsupported timestamp precision"):
            TimestampPrecision.from_name("nanoseconds")
