"""
Record store capability and its SQLite implementation.

The repository only ever talks to `RecordStore`. Tests swap in doubles that
implement the same three methods; nothing is monkey-patched.

Contract:
  put(record, if_absent=True) is an atomic create-if-absent. It raises
  AlreadyExistsError when a live record holds the key, StoreError for
  anything else. This is the one primitive the dedup logic is built on:
  never emulate it with a read followed by a write.
"""

import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Type, TypeVar

from errors import AlreadyExistsError, RecordNotFoundError, SerializationError, StoreError
from models import RecordBase
from pydantic import ValidationError
from storage import record_queries
from storage.database import check_db_connection, db_cursor, init_db

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=RecordBase)


class RecordStore(ABC):
    @abstractmethod
    def put(self, record: RecordBase, *, if_absent: bool = False, now: Optional[datetime] = None) -> None:
        """
        Write a record.

        With if_absent=True the write fails with AlreadyExistsError if a record
        already exists at (pk, sk). When `now` is given, a record that expired
        before `now` counts as absent.
        """

    @abstractmethod
    def get(self, pk: str, sk: str, record_type: Type[RecordT]) -> RecordT:
        """Read one record. Raises RecordNotFoundError if there is none."""

    @abstractmethod
    def scan(self, pk: str, record_type: Type[RecordT]) -> List[RecordT]:
        """Read every record under a partition key."""


def _decode(row: sqlite3.Row, record_type: Type[RecordT]) -> RecordT:
    try:
        return record_type.model_validate_json(row["body"])
    except ValidationError as exc:
        raise SerializationError(
            f"Failed to decode {record_type.__name__}", pk=row["pk"], sk=row["sk"], data=row["body"]
        ) from exc


class SQLiteRecordStore(RecordStore):
    def __init__(self, db_path: str):
        self.db_path = db_path

    def init(self) -> None:
        init_db(self.db_path)

    def is_healthy(self) -> bool:
        return check_db_connection(self.db_path)

    def put(self, record: RecordBase, *, if_absent: bool = False, now: Optional[datetime] = None) -> None:
        body = record.model_dump_json()
        created_at = record.created_at.isoformat()
        expired_before = int(now.timestamp()) if now is not None else None

        try:
            with db_cursor(self.db_path) as cursor:
                if not if_absent:
                    record_queries.replace_record(
                        cursor, record.pk, record.sk, record.expires_at, created_at, body
                    )
                    return
                written = record_queries.create_record(
                    cursor, record.pk, record.sk, record.expires_at, created_at, body, expired_before
                )
        except sqlite3.Error as exc:
            raise StoreError("Failed to put record", pk=record.pk, sk=record.sk) from exc

        if not written:
            logger.debug("Conditional put rejected, record exists (pk=%s sk=%s)", record.pk, record.sk)
            raise AlreadyExistsError("Record already exists", pk=record.pk, sk=record.sk)

    def get(self, pk: str, sk: str, record_type: Type[RecordT]) -> RecordT:
        try:
            with db_cursor(self.db_path) as cursor:
                row = record_queries.fetch_record(cursor, pk, sk)
        except sqlite3.Error as exc:
            raise StoreError("Failed to get record", pk=pk, sk=sk) from exc

        if row is None:
            raise RecordNotFoundError("Record not found", pk=pk, sk=sk)
        return _decode(row, record_type)

    def scan(self, pk: str, record_type: Type[RecordT]) -> List[RecordT]:
        try:
            with db_cursor(self.db_path) as cursor:
                rows = record_queries.scan_records(cursor, pk)
        except sqlite3.Error as exc:
            raise StoreError("Failed to scan records", pk=pk) from exc

        # Fail fast: one undecodable row aborts the whole scan
        return [_decode(row, record_type) for row in rows]

    def purge_expired(self, now: datetime) -> int:
        """Delete every record whose TTL has passed. Returns the number deleted."""
        try:
            with db_cursor(self.db_path) as cursor:
                deleted = record_queries.delete_expired(cursor, int(now.timestamp()))
        except sqlite3.Error as exc:
            raise StoreError("Failed to purge expired records") from exc

        logger.debug("Purged %d expired records", deleted)
        return deleted
