"""
Record and column comparison between two versions of a table.
"""

from .columns import check_columns
from .records import diff_table

__all__ = ["diff_table", "check_columns"]
