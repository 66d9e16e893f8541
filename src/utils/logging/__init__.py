"""
Structured logging configuration for tablesync.

Usage:
    from utils.logging import setup_logging

    # Setup logging (call once at application startup)
    setup_logging(level="INFO", log_file="/var/log/tablesync/sync.log")

    logger = logging.getLogger(__name__)
    logger.info("Upserting records", extra={"table_name": "orders", "count": 12})

Library modules only ever call ``logging.getLogger(__name__)``; handlers are
the embedding application's choice.
"""

from .config import configure_from_env, get_logger, setup_logging, shutdown_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "get_logger",
    "configure_from_env",
    "shutdown_logging",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]
