"""
Shared pytest fixtures and configuration.

conftest.py is auto-loaded by pytest; fixtures defined here are available
to all test files without explicit imports.

The queue and store doubles implement the same capability interfaces as the
real clients, so nothing needs monkey-patching.
"""

import os
import sys
from datetime import datetime, timezone

import pytest

# Add the service directory to the path so tests can import service modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "service"))

from errors import QueueError, StoreError  # noqa: E402
from messaging.task_queue import TaskQueue  # noqa: E402
from storage.record_store import RecordStore, SQLiteRecordStore  # noqa: E402
from storage.repository import RepositoryService  # noqa: E402

CONTENT_QUEUE_URL = "http://correlator.test/content"
ATTRIBUTE_QUEUE_URL = "http://correlator.test/attributes"
TASK_QUEUE_URL = "http://inspector.test/tasks"


class RecordingQueue(TaskQueue):
    """Keeps every published message. Set fail_on to make the Nth publish (0-based) fail."""

    def __init__(self):
        self.messages: list = []
        self.fail_on = None
        self._attempts = 0

    def publish(self, queue_url: str, payload: bytes) -> None:
        attempt = self._attempts
        self._attempts += 1
        if self.fail_on is not None and attempt == self.fail_on:
            raise QueueError("injected publish failure", queue_url=queue_url)
        self.messages.append((queue_url, payload))

    def sent_to(self, queue_url: str) -> list:
        return [payload for url, payload in self.messages if url == queue_url]


class FlakyStore(RecordStore):
    """Delegates to a real store unless told to fail puts or gets."""

    def __init__(self, inner: RecordStore):
        self.inner = inner
        self.fail_put = False
        self.fail_get = False

    def put(self, record, *, if_absent=False, now=None):
        if self.fail_put:
            raise StoreError("injected put failure", pk=record.pk)
        self.inner.put(record, if_absent=if_absent, now=now)

    def get(self, pk, sk, record_type):
        if self.fail_get:
            raise StoreError("injected get failure", pk=pk)
        return self.inner.get(pk, sk, record_type)

    def scan(self, pk, record_type):
        return self.inner.scan(pk, record_type)


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path) -> SQLiteRecordStore:
    sqlite_store = SQLiteRecordStore(str(tmp_path / "records.db"))
    sqlite_store.init()
    return sqlite_store


@pytest.fixture
def repository(store) -> RepositoryService:
    return RepositoryService(store, ttl_seconds=3600)


@pytest.fixture
def flaky_store(store) -> FlakyStore:
    return FlakyStore(store)


@pytest.fixture
def queue() -> RecordingQueue:
    return RecordingQueue()
