"""Storage backends for books and search logs."""

from .base import BookRecord, SearchLogRecord, StorageBackend
from .duckdb import DuckDBStorage
from .memory import InMemoryStorage

__all__ = [
    "BookRecord",
    "SearchLogRecord",
    "StorageBackend",
    "DuckDBStorage",
    "InMemoryStorage",
]
