"""
Tagged column values and the canonical equality used by the record diff.

Driver values are tagged once at the boundary (``Value.from_native``) and
compared through :func:`values_equal`, which absorbs the representational
differences between MySQL and PostgreSQL drivers:

- booleans compare as the numbers 0/1 (``tinyint(1)`` vs ``boolean``)
- numbers compare as exact decimals (``1``, ``1.0`` and ``Decimal("1.00")``)
- a string equals a number when it parses to the same decimal
- aware timestamps are normalized to naive UTC and truncated to a precision
- MySQL ``TIME`` values (``timedelta``) compare equal to ``datetime.time``
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any
from uuid import UUID


class ValueKind(str, Enum):
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    BYTES = "bytes"
    TIMESTAMP = "timestamp"


class TimestampPrecision(str, Enum):
    """Resolution at which timestamps and clock times are compared."""

    MICROSECONDS = "microseconds"
    MILLISECONDS = "milliseconds"
    SECONDS = "seconds"

    @classmethod
    def from_name(cls, name: str) -> "TimestampPrecision":
        normalized = name.strip().lower()
        aliases = {"us": "microseconds", "ms": "milliseconds", "s": "seconds"}
        try:
            return cls(aliases.get(normalized, normalized))
        except ValueError:
            raise ValueError(f"Unsupported timestamp precision: {name!r}") from None

    def truncate_micros(self, micros: int) -> int:
        if self == TimestampPrecision.MILLISECONDS:
            return micros - micros % 1000
        if self == TimestampPrecision.SECONDS:
            return 0
        return micros


DEFAULT_PRECISION = TimestampPrecision.MICROSECONDS


@dataclass(frozen=True)
class Value:
    """A column value tagged with its kind."""

    kind: ValueKind
    payload: Any = None

    @classmethod
    def null(cls) -> "Value":
        return cls(ValueKind.NULL)

    @classmethod
    def from_native(cls, raw: Any) -> "Value":
        """Tag a value as returned by PyMySQL or psycopg2."""
        if isinstance(raw, Value):
            return raw
        if raw is None:
            return cls(ValueKind.NULL)
        # bool before int: bool is an int subclass
        if isinstance(raw, bool):
            return cls(ValueKind.BOOL, raw)
        if isinstance(raw, (int, float, Decimal)):
            return cls(ValueKind.NUMBER, raw)
        if isinstance(raw, (bytes, bytearray, memoryview)):
            return cls(ValueKind.BYTES, bytes(raw))
        if isinstance(raw, (datetime, date, time, timedelta)):
            return cls(ValueKind.TIMESTAMP, raw)
        if isinstance(raw, (dict, list)):
            return cls(
                ValueKind.STRING,
                json.dumps(raw, sort_keys=True, separators=(",", ":"), default=str),
            )
        if isinstance(raw, UUID):
            return cls(ValueKind.STRING, str(raw))
        if isinstance(raw, str):
            return cls(ValueKind.STRING, raw)
        return cls(ValueKind.STRING, str(raw))

    @property
    def is_null(self) -> bool:
        return self.kind == ValueKind.NULL

    def to_native(self) -> Any:
        """Return a value a DB-API driver can bind as a parameter."""
        return self.payload


Record = dict[str, Value]


def to_record(row: Mapping[str, Any]) -> Record:
    """Tag every column of a driver row, keeping column order."""
    return {column: Value.from_native(raw) for column, raw in row.items()}


def record_to_native(record: Mapping[str, Value]) -> dict[str, Any]:
    return {column: value.to_native() for column, value in record.items()}


def _clock(total_micros: int, precision: TimestampPrecision) -> str:
    sign = "-" if total_micros < 0 else ""
    total_micros = abs(total_micros)
    seconds, micros = divmod(total_micros, 1_000_000)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    micros = precision.truncate_micros(micros)
    text = f"{sign}{hours:02d}:{minutes:02d}:{secs:02d}"
    if micros:
        text += f".{micros:06d}"
    return text


def format_clock(value: time | timedelta, precision: TimestampPrecision = DEFAULT_PRECISION) -> str:
    """Render a time of day or a MySQL TIME interval as HH:MM:SS[.ffffff]."""
    if isinstance(value, timedelta):
        total = (value.days * 86400 + value.seconds) * 1_000_000 + value.microseconds
    else:
        total = (value.hour * 3600 + value.minute * 60 + value.second) * 1_000_000 + value.microsecond
    return _clock(total, precision)


def _number(payload: Any) -> tuple[str, Any]:
    number = Decimal(payload) if isinstance(payload, Decimal) else Decimal(str(payload))
    if number.is_nan():
        return ("nonfinite", "nan")
    if number.is_infinite():
        return ("nonfinite", "inf" if number > 0 else "-inf")
    return ("number", number)


def canonical(value: Value, precision: TimestampPrecision = DEFAULT_PRECISION) -> tuple:
    """
    Reduce a value to a hashable, engine-neutral form.

    Two values with equal canonical forms are equal; the converse holds except
    for strings that spell numbers, see :func:`values_equal`.
    """
    kind, payload = value.kind, value.payload

    if kind == ValueKind.NULL:
        return ("null",)
    if kind == ValueKind.BOOL:
        return ("number", Decimal(int(payload)))
    if kind == ValueKind.NUMBER:
        return _number(payload)
    if kind == ValueKind.BYTES:
        return ("bytes", bytes(payload))
    if kind == ValueKind.TIMESTAMP:
        if isinstance(payload, datetime):
            if payload.tzinfo is not None and payload.utcoffset() is not None:
                payload = payload.astimezone(UTC).replace(tzinfo=None)
            else:
                payload = payload.replace(tzinfo=None)
            return (
                "timestamp",
                payload.replace(microsecond=precision.truncate_micros(payload.microsecond)),
            )
        if isinstance(payload, date):
            return ("date", payload.isoformat())
        if isinstance(payload, (time, timedelta)):
            return ("clock", format_clock(payload, precision))
    return ("string", payload)


def _parse_decimal(text: str) -> Decimal | None:
    try:
        number = Decimal(text)
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def values_equal(
    left: Value, right: Value, precision: TimestampPrecision = DEFAULT_PRECISION
) -> bool:
    """Equality under the canonical rule (NULL equals only NULL)."""
    left_c = canonical(left, precision)
    right_c = canonical(right, precision)
    if left_c == right_c:
        return True

    # "42.0" == 42
    if left_c[0] == "string" and right_c[0] == "number":
        parsed = _parse_decimal(left_c[1])
        return parsed is not None and parsed == right_c[1]
    if left_c[0] == "number" and right_c[0] == "string":
        parsed = _parse_decimal(right_c[1])
        return parsed is not None and parsed == left_c[1]
    return False


def records_equal(
    left: Mapping[str, Value],
    right: Mapping[str, Value],
    precision: TimestampPrecision = DEFAULT_PRECISION,
) -> bool:
    """
    Compare two records over their full column sets, ignoring column order.

    Records with different column sets are never equal.
    """
    if left.keys() != right.keys():
        return False
    return all(values_equal(left[column], right[column], precision) for column in left)
