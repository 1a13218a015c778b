"""Storage backends for fragment metadata and payloads."""

from typing import Optional

from fragments import config
from fragments.storage.base import KeyValueStore, StorageBackend
from fragments.storage.memory import MemoryDB, MemoryStorageBackend
from fragments.storage.sqlite import SqliteStorageBackend, SqliteTable


def create_storage_backend(kind: Optional[str] = None, database_path: Optional[str] = None) -> StorageBackend:
    """
    Create the storage backend selected by configuration.

    Args:
        kind: "memory" or "sqlite". Defaults to FRAGMENTS_STORAGE_BACKEND
        database_path: SQLite file path. Defaults to FRAGMENTS_DATABASE_PATH

    Raises:
        ValueError: If kind names no known backend
    """
    kind = (kind or config.STORAGE_BACKEND).lower()

    if kind == "memory":
        return MemoryStorageBackend()
    if kind == "sqlite":
        return SqliteStorageBackend(database_path or config.DATABASE_PATH)

    raise ValueError(f"Unknown storage backend: {kind}")


__all__ = [
    "KeyValueStore",
    "StorageBackend",
    "MemoryDB",
    "MemoryStorageBackend",
    "SqliteTable",
    "SqliteStorageBackend",
    "create_storage_backend",
]
