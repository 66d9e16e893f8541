"""
MySQL column type to PostgreSQL type translation.

Matching is case-insensitive substring containment over an ordered rule
table; the first rule that matches wins. Parenthesised arguments are removed
first, so ``enum('int','date')`` is matched as ``enum`` and never by the
literal members it lists.
"""

import re

FALLBACK_TYPE = "TEXT"

# Order matters: "bigint" before "int", "varchar" before "char",
# "datetime"/"timestamp" before "date" before "time".
TYPE_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("bigint",), "BIGINT"),
    (("smallint", "tinyint"), "SMALLINT"),
    (("int",), "INTEGER"),
    (("decimal", "numeric"), "NUMERIC"),
    (("float", "double", "real"), "DOUBLE PRECISION"),
    (("varchar",), "VARCHAR"),
    (("char",), "CHAR"),
    (("text",), "TEXT"),
    (("binary", "blob"), "BYTEA"),
    # "date" and "time" are substrings of "datetime"; checked first, either
    # would map datetime to DATE or TIME
    (("datetime", "timestamp"), "TIMESTAMP"),
    (("date",), "DATE"),
    (("time",), "TIME"),
    (("boolean", "bool"), "BOOLEAN"),
    (("json",), "JSONB"),
)

TARGET_TOKENS: frozenset[str] = frozenset(target for _, target in TYPE_RULES) | {FALLBACK_TYPE}

NUMERIC_TARGETS = frozenset({"BIGINT", "SMALLINT", "INTEGER", "NUMERIC", "DOUBLE PRECISION"})

# Targets that keep the source's length or precision arguments
SIZED_TARGETS = frozenset({"VARCHAR", "CHAR", "NUMERIC"})

_ARGUMENTS = re.compile(r"\([^)]*\)")
_SIZE = re.compile(r"\(\s*(\d+)(?:\s*,\s*(\d+))?\s*\)")


def base_type(native_type: str) -> str:
    """Lower-cased type name with parenthesised arguments removed."""
    return _ARGUMENTS.sub("", native_type).strip().lower()


def map_mysql_type(native_type: str) -> str:
    """
    Map a MySQL column type to a PostgreSQL type token.

    Total over all strings: anything unrecognised maps to TEXT.

    Examples:
        >>> map_mysql_type("bigint unsigned")
        'BIGINT'
        >>> map_mysql_type("varchar(255)")
        'VARCHAR'
        >>> map_mysql_type("geometry")
        'TEXT'
    """
    name = base_type(native_type)
    for tokens, target in TYPE_RULES:
        if any(token in name for token in tokens):
            return target
    return FALLBACK_TYPE


def sized_type(native_type: str) -> str:
    """
    Mapped type carrying the source length or precision where it applies.

    ``varchar(255)`` becomes ``VARCHAR(255)`` and ``decimal(10,2)`` becomes
    ``NUMERIC(10,2)``; a VARCHAR without a length stays unbounded.
    """
    target = map_mysql_type(native_type)
    if target not in SIZED_TARGETS:
        return target
    match = _SIZE.search(native_type)
    if not match:
        return target
    length, scale = match.groups()
    if scale is not None:
        return f"{target}({length},{scale})"
    return f"{target}({length})"
