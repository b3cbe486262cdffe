"""
Raw SQL queries for the records table.

Each function takes a cursor and executes exactly one query.
No business logic, no loops, no conditionals. Just SQL.
To switch databases, change this file and database.py only.
"""

import sqlite3
from typing import Any, Optional


def replace_record(
    cursor: sqlite3.Cursor, pk: str, sk: str, expires_at: int, created_at: str, body: str
) -> None:
    """INSERT OR REPLACE one record."""
    cursor.execute(
        """
        INSERT OR REPLACE INTO records (pk, sk, expires_at, created_at, body)
        VALUES (?, ?, ?, ?, ?)
        """,
        (pk, sk, expires_at, created_at, body),
    )


def create_record(
    cursor: sqlite3.Cursor,
    pk: str,
    sk: str,
    expires_at: int,
    created_at: str,
    body: str,
    expired_before: Optional[int],
) -> int:
    """
    Create one record unless a live one already holds (pk, sk).

    A row whose expires_at is below `expired_before` counts as absent and is
    overwritten. Single statement, so the check and the write are atomic.
    Returns 1 if written, 0 if a live record already exists.
    """
    cursor.execute(
        """
        INSERT INTO records (pk, sk, expires_at, created_at, body)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT (pk, sk) DO UPDATE SET
            expires_at = excluded.expires_at,
            created_at = excluded.created_at,
            body       = excluded.body
        WHERE records.expires_at < ?
        """,
        (pk, sk, expires_at, created_at, body, expired_before),
    )
    return cursor.rowcount


def fetch_record(cursor: sqlite3.Cursor, pk: str, sk: str) -> Optional[Any]:
    """Return the row at (pk, sk), or None."""
    cursor.execute("SELECT * FROM records WHERE pk = ? AND sk = ?", (pk, sk))
    return cursor.fetchone()


def scan_records(cursor: sqlite3.Cursor, pk: str) -> list:
    """Return every row under one partition key, ordered by sort key."""
    cursor.execute("SELECT * FROM records WHERE pk = ? ORDER BY sk", (pk,))
    return cursor.fetchall()


def delete_expired(cursor: sqlite3.Cursor, now: int) -> int:
    """Delete rows whose expiry has passed. Returns the number deleted."""
    cursor.execute("DELETE FROM records WHERE expires_at < ?", (now,))
    return cursor.rowcount
