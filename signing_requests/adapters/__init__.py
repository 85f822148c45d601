"""Adapters for external dependencies.

- Database access (SQL-agnostic)
- File storage (filesystem-agnostic)
"""

from signing_requests.adapters.database_adapter import DatabaseAdapter
from signing_requests.adapters.sqlite_adapter import SQLiteAdapter
from signing_requests.adapters.storage_adapter import StorageAdapter
from signing_requests.adapters.filesystem_storage_adapter import FilesystemStorageAdapter

__all__ = [
    "DatabaseAdapter",
    "SQLiteAdapter",
    "StorageAdapter",
    "FilesystemStorageAdapter",
]
