"""SQLite storage backend: metadata and payloads in two tables of one file."""

import sqlite3
from typing import List, Optional

from common.logging_config import get_logger
from fragments.database import DATA_TABLE, METADATA_TABLE, get_db_connection, init_database
from fragments.exceptions import StorageError
from fragments.storage.base import KeyValueStore, StorageBackend, ValueT, validate_keys, validate_owner

logger = get_logger(__name__)


class SqliteTable(KeyValueStore[ValueT]):
    """
    One namespace stored as a (owner_id, fragment_id, value) table.

    Inserts keep the existing rowid on overwrite so query() stays in
    insertion order.
    """

    def __init__(self, database_path: str, table: str):
        self.database_path = database_path
        self.table = table

    def _fail(self, action: str, key: str, error: sqlite3.Error) -> StorageError:
        logger.error(f"SQLite {action} failed: table={self.table} key={key}: {error}", exc_info=True)
        return StorageError(f"unable to {action} fragment record (table={self.table}, key={key})")

    async def put(self, owner_id: str, fragment_id: str, value: ValueT) -> None:
        validate_keys(owner_id, fragment_id)
        try:
            with get_db_connection(self.database_path) as conn:
                conn.execute(
                    f"""
                    INSERT INTO {self.table} (owner_id, fragment_id, value)
                    VALUES (?, ?, ?)
                    ON CONFLICT(owner_id, fragment_id) DO UPDATE SET value = excluded.value
                    """,
                    (owner_id, fragment_id, value)
                )
                conn.commit()
        except sqlite3.Error as e:
            raise self._fail("write", f"{owner_id}/{fragment_id}", e) from e

    async def get(self, owner_id: str, fragment_id: str) -> Optional[ValueT]:
        validate_keys(owner_id, fragment_id)
        try:
            with get_db_connection(self.database_path) as conn:
                row = conn.execute(
                    f"SELECT value FROM {self.table} WHERE owner_id = ? AND fragment_id = ?",
                    (owner_id, fragment_id)
                ).fetchone()
        except sqlite3.Error as e:
            raise self._fail("read", f"{owner_id}/{fragment_id}", e) from e

        return row["value"] if row else None

    async def query(self, owner_id: str) -> List[ValueT]:
        validate_owner(owner_id)
        try:
            with get_db_connection(self.database_path) as conn:
                rows = conn.execute(
                    f"SELECT value FROM {self.table} WHERE owner_id = ? ORDER BY rowid",
                    (owner_id,)
                ).fetchall()
        except sqlite3.Error as e:
            raise self._fail("list", f"{owner_id}/*", e) from e

        return [row["value"] for row in rows]

    async def delete(self, owner_id: str, fragment_id: str) -> bool:
        validate_keys(owner_id, fragment_id)
        try:
            with get_db_connection(self.database_path) as conn:
                cursor = conn.execute(
                    f"DELETE FROM {self.table} WHERE owner_id = ? AND fragment_id = ?",
                    (owner_id, fragment_id)
                )
                conn.commit()
        except sqlite3.Error as e:
            raise self._fail("delete", f"{owner_id}/{fragment_id}", e) from e

        return cursor.rowcount > 0


class SqliteStorageBackend(StorageBackend):
    def __init__(self, database_path: str):
        self.database_path = database_path
        try:
            init_database(database_path)
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Failed to initialise fragment database at {database_path}: {e}", exc_info=True)
            raise StorageError(f"unable to open fragment database at {database_path}") from e

        self.metadata: SqliteTable[str] = SqliteTable(database_path, METADATA_TABLE)
        self.data: SqliteTable[bytes] = SqliteTable(database_path, DATA_TABLE)
        logger.info(f"SQLite storage ready at {database_path}")
