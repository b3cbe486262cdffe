"""
SQLite database initialisation.

Why SQLite:
  - Zero ops: no separate container or process
  - The composite primary key (pk, sk) gives us an atomic create-if-absent,
    which is the only concurrency primitive the correlation logic relies on
  - Ships with Python stdlib

One table:
  - records: every staged record, keyed (pk, sk), body stored as JSON
"""

import logging
import sqlite3
from contextlib import contextmanager
from typing import Generator

logger = logging.getLogger(__name__)

# Seconds a writer waits for a competing writer before giving up
_BUSY_TIMEOUT = 30.0


def get_connection(db_path: str) -> sqlite3.Connection:
    """Return a new SQLite connection with row_factory set for dict-like access."""
    conn = sqlite3.connect(db_path, timeout=_BUSY_TIMEOUT, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def db_cursor(db_path: str) -> Generator[sqlite3.Cursor, None, None]:
    """Context manager: yields a cursor and commits on clean exit, rolls back on error."""
    conn = get_connection(db_path)
    try:
        cursor = conn.cursor()
        yield cursor
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db(db_path: str) -> None:
    """Create tables and indexes if they don't exist. Safe to call on every startup."""
    with db_cursor(db_path) as cursor:
        # WAL mode persists at the file level, only needs to be set once
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.executescript(
            """
            CREATE TABLE IF NOT EXISTS records (
                pk          TEXT NOT NULL,
                sk          TEXT NOT NULL,
                expires_at  INTEGER NOT NULL,
                created_at  TEXT NOT NULL,
                body        TEXT NOT NULL,
                PRIMARY KEY (pk, sk)
            );

            CREATE INDEX IF NOT EXISTS idx_records_expires_at ON records(expires_at);
        """
        )
    logger.info("Database initialised at %s", db_path)


def check_db_connection(db_path: str) -> bool:
    """Lightweight connectivity check used by /health endpoint."""
    try:
        with db_cursor(db_path) as cursor:
            cursor.execute("SELECT 1 FROM records LIMIT 1")
        return True
    except Exception as exc:  # pylint: disable=broad-except
        logger.error("DB connectivity check failed: %s", exc)
        return False
