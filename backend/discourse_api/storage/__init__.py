"""Storage backends (in-memory and SQL)."""

from discourse_api.storage.factory import StorageFactory
from discourse_api.storage.in_memory_store import InMemoryStorage
from discourse_api.storage.sql_store import SQLStorage

__all__ = [
    "StorageFactory",
    "InMemoryStorage",
    "SQLStorage",
]
