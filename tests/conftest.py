"""
Pytest Configuration and Fixtures
"""

import os
import sys
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), 'src'))

# Set test environment
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.pop("POSTGRES_HOST", None)

from subscriptions.core.record import Record
from subscriptions.core.service import RecordService
from subscriptions.core.store import RecordNotFoundError, StorageError
from subscriptions.persistence.database import Database
from subscriptions.persistence.repository import RecordRepository

FROZEN_NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def make_record(**overrides) -> Record:
    """A valid record relative to FROZEN_NOW."""
    fields = {
        "service_name": "Netflix",
        "price": 999,
        "user_id": "u1",
        "expires_at": FROZEN_NOW + timedelta(days=30),
    }
    fields.update(overrides)
    return Record(**fields)


class InMemoryStore:
    """RecordStore double; set ``fail`` to make every call raise StorageError."""

    def __init__(self):
        self.records = {}
        self.fail = False
        self.calls = []
        self._next_id = 1

    def _enter(self, name, *args):
        self.calls.append((name, args))
        if self.fail:
            raise StorageError("store unavailable")

    def save(self, record):
        self._enter("save", record)
        saved = replace(record, id=self._next_id)
        self.records[saved.id] = saved
        self._next_id += 1
        return saved

    def delete_by_id(self, record_id):
        self._enter("delete_by_id", record_id)
        if record_id not in self.records:
            raise RecordNotFoundError(f"record {record_id} not found")
        del self.records[record_id]

    def get_by_id(self, record_id):
        self._enter("get_by_id", record_id)
        if record_id not in self.records:
            raise RecordNotFoundError(f"record {record_id} not found")
        return self.records[record_id]

    def get_by_user(self, user_id):
        self._enter("get_by_user", user_id)
        return [r for r in self.records.values() if r.user_id == user_id]

    def get_by_user_and_service(self, user_id, service_name):
        self._enter("get_by_user_and_service", user_id, service_name)
        for r in self.records.values():
            if r.user_id == user_id and r.service_name == service_name:
                return r
        raise RecordNotFoundError("not found")

    def update(self, record):
        self._enter("update", record)
        if record.id not in self.records:
            raise RecordNotFoundError(f"record {record.id} not found")
        self.records[record.id] = record
        return record

    def list_records(self, limit, offset, user_id=None, service_name=None):
        self._enter("list_records", limit, offset, user_id, service_name)
        return list(self.records.values())[:limit]

    def sum_for_period(self, period, user_id=None, service_name=None):
        self._enter("sum_for_period", period, user_id, service_name)
        lower, upper = period
        return sum(
            r.price for r in self.records.values()
            if lower <= r.created_at < upper
            and (not user_id or r.user_id == user_id)
            and (not service_name or r.service_name == service_name)
        )


@pytest.fixture
def db(tmp_path):
    """A fresh SQLite database file per test."""
    database = Database(f"sqlite:///{tmp_path / 'subscriptions.db'}")
    database.initialize()
    yield database
    database.close()


@pytest.fixture
def repository(db):
    return RecordRepository(db)


@pytest.fixture
def service(repository):
    """Service over SQLite with the clock frozen at FROZEN_NOW."""
    return RecordService(repository, clock=lambda: FROZEN_NOW)


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def memory_service(memory_store):
    return RecordService(memory_store, clock=lambda: FROZEN_NOW)
