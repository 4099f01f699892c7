"""shopsync storage backends.

Local-first storage using SQLite.
"""

from .base import LocalStore
from .schema import ALLOWED_TABLES, validate_table_name
from .sqlite import SQLiteStore

__all__ = [
    "LocalStore",
    "SQLiteStore",
    "ALLOWED_TABLES",
    "validate_table_name",
]
