"""
Cross-engine migration from MySQL to PostgreSQL

Components:
- type_mapping: MySQL type string -> PostgreSQL type token
- ddl: CREATE TABLE generation with key and default handling
- literals: SQL literals for previews and scripts, driver parameters for inserts
- migrator: drop, create and copy with per-row failure collection

Usage:
    from migration import migrate_table

    outcome = migrate_table(mysql_conn, pg_conn, "orders", database="shop")
"""

from .ddl import build_create_table
from .literals import encode_literal, render_insert, to_pg_param
from .migrator import migrate_table, migrate_tables, plan_migration
from .models import MappedColumn, MigrationOutcome, MigrationPlan, MigrationState
from .type_mapping import FALLBACK_TYPE, TARGET_TOKENS, map_mysql_type

__all__ = [
    "map_mysql_type",
    "TARGET_TOKENS",
    "FALLBACK_TYPE",
    "build_create_table",
    "encode_literal",
    "render_insert",
    "to_pg_param",
    "plan_migration",
    "migrate_table",
    "migrate_tables",
    "MappedColumn",
    "MigrationPlan",
    "MigrationOutcome",
    "MigrationState",
]
