"""Database schema and connection management for SQLite."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

METADATA_TABLE = "fragment_metadata"
DATA_TABLE = "fragment_data"


def init_database(database_path: str) -> None:
    """
    Initialize database and create tables if they don't exist.
    """
    db_path = Path(database_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection(database_path) as conn:
        cursor = conn.cursor()

        cursor.execute(f"""
            CREATE TABLE IF NOT EXISTS {METADATA_TABLE} (
                owner_id TEXT NOT NULL,
                fragment_id TEXT NOT NULL,
                value TEXT NOT NULL,
                PRIMARY KEY(owner_id, fragment_id)
            )
        """)

        cursor.execute(f"""
            CREATE TABLE IF NOT EXISTS {DATA_TABLE} (
                owner_id TEXT NOT NULL,
                fragment_id TEXT NOT NULL,
                value BLOB NOT NULL,
                PRIMARY KEY(owner_id, fragment_id)
            )
        """)

        cursor.execute(f"""
            CREATE INDEX IF NOT EXISTS idx_metadata_owner ON {METADATA_TABLE}(owner_id)
        """)

        conn.commit()


@contextmanager
def get_db_connection(database_path: str) -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for database connections.
    """
    conn = sqlite3.connect(database_path)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()
