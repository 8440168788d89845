"""
Database connection management.

Provides SQLite connections for the usage ledger.
"""

import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = ".editor-assist.db"


def get_connection(db_path: str = DEFAULT_DB_PATH, timeout: float = 10.0) -> sqlite3.Connection:
    """Create and return a SQLite connection in autocommit mode.

    Transactions are opened explicitly (``BEGIN IMMEDIATE``) by the callers
    that need them, so the write lock is taken before the first read.

    Args:
        db_path: Path to SQLite database file
        timeout: Seconds to wait for a competing writer to release its lock

    Returns:
        SQLite connection with foreign key constraints enabled
    """
    path = Path(db_path)
    conn = sqlite3.connect(str(path), timeout=timeout, isolation_level=None)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn
