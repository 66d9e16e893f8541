"""
Shared infrastructure for tablesync

Provides:
- connections: MySQL and PostgreSQL connection wrappers
- sql_safety / query_builder: identifier quoting and parameterized statements
- logging, metrics, tracing: ambient observability
"""

__version__ = "0.1.0"
__all__ = ["connections", "database_types", "sql_safety", "query_builder", "metrics", "tracing"]
