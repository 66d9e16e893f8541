"""
Database type enumeration for type-safe engine identification.

Replaces hardcoded 'mysql' and 'postgresql' strings throughout the codebase.
"""

from enum import Enum


class DatabaseType(str, Enum):
    """
    Enumeration of supported engine families.

    Inherits from str for JSON serialization compatibility and
    easy comparison with string values.
    """

    MYSQL = "mysql"
    POSTGRESQL = "postgresql"

    @classmethod
    def from_name(cls, name: str) -> "DatabaseType":
        """
        Resolve a loosely spelled engine name.

        Args:
            name: Engine name such as 'mysql', 'MariaDB', 'postgres', 'pg'

        Returns:
            DatabaseType enum value

        Raises:
            ValueError: If the name does not belong to a supported engine
        """
        normalized = name.strip().lower()

        if normalized in ("mysql", "mariadb"):
            return cls.MYSQL
        elif normalized in ("postgresql", "postgres", "pg"):
            return cls.POSTGRESQL
        raise ValueError(f"Unsupported database type: {name!r}")

    @property
    def identifier_limit(self) -> int:
        """Maximum identifier length accepted by the engine."""
        if self == DatabaseType.MYSQL:
            return 64
        return 63

    @property
    def default_port(self) -> int:
        if self == DatabaseType.MYSQL:
            return 3306
        return 5432

    def get_placeholder(self) -> str:
        """
        Get parameter placeholder for this engine.

        Both PyMySQL and psycopg2 use the 'format' paramstyle.
        """
        return "%s"

    def quote_char(self) -> str:
        """Identifier quote character for this engine."""
        if self == DatabaseType.MYSQL:
            return "`"
        return '"'
