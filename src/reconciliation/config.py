"""
Runtime settings for comparison and sync, read from the environment.

Environment variables:
    SYNC_TIMESTAMP_PRECISION: microseconds | milliseconds | seconds (default: microseconds)
    SYNC_COPY_BATCH_SIZE: rows per executemany batch during table replacement (default: 500)
    SYNC_CONNECT_TIMEOUT: driver connect timeout in seconds (default: 10)
    SYNC_BACKUP_SUFFIX: infix of backup table names (default: backup)
"""

import logging
import os
from dataclasses import dataclass

from utils.sql_safety import validate_identifier

from .values import DEFAULT_PRECISION, TimestampPrecision

logger = logging.getLogger(__name__)


def _positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class SyncSettings:
    timestamp_precision: TimestampPrecision = DEFAULT_PRECISION
    copy_batch_size: int = 500
    connect_timeout: int = 10
    backup_suffix: str = "backup"

    def __post_init__(self):
        if self.copy_batch_size <= 0:
            raise ValueError(f"copy_batch_size must be positive, got {self.copy_batch_size}")
        if self.connect_timeout <= 0:
            raise ValueError(f"connect_timeout must be positive, got {self.connect_timeout}")
        validate_identifier(self.backup_suffix)

    @classmethod
    def from_env(cls) -> "SyncSettings":
        precision = os.getenv("SYNC_TIMESTAMP_PRECISION")
        settings = cls(
            timestamp_precision=(
                TimestampPrecision.from_name(precision) if precision else DEFAULT_PRECISION
            ),
            copy_batch_size=_positive_int("SYNC_COPY_BATCH_SIZE", 500),
            connect_timeout=_positive_int("SYNC_CONNECT_TIMEOUT", 10),
            backup_suffix=os.getenv("SYNC_BACKUP_SUFFIX") or "backup",
        )
        logger.debug(f"Loaded sync settings: {settings}")
        return settings
