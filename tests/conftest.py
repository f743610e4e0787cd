"""
Pytest configuration for the Service Tracker API.

Provides fixtures for:
- An isolated SQLite database per test
- Regular and admin callers plus matching identity tokens
- A record store double that records calls or fails on demand,
  per operation or per record
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from service_tracker_api.app.core.config import settings
from service_tracker_api.app.core.db import init_db
from service_tracker_api.app.core.errors import RemoteError
from service_tracker_api.app.core.security import (
    AdminUser,
    Identity,
    RegularUser,
    create_identity_token,
)
from service_tracker_api.app.core.store import RecordStore, SQLiteRecordStore
from service_tracker_api.app.services import service_record_service
from service_tracker_api.app.services.duplicate_service import reset_detectors


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch) -> str:
    """Point the app at a fresh SQLite file and apply migrations."""
    db_path = str(tmp_path / "test_service_tracker.db")
    monkeypatch.setattr(settings, "database_url", db_path)
    monkeypatch.setattr(settings, "record_store", "sqlite")
    monkeypatch.setattr(settings, "duplicate_debounce_ms", 0)
    monkeypatch.setattr(settings, "identity_secret", "test-secret")
    init_db()
    reset_detectors()
    yield db_path
    reset_detectors()


@pytest.fixture()
def regular_user() -> RegularUser:
    return RegularUser(Identity(user_id="user_1", username="ana", full_name="Ana Souza"))


@pytest.fixture()
def other_user() -> RegularUser:
    return RegularUser(Identity(user_id="user_2", first_name="Bruno"))


@pytest.fixture()
def admin_user() -> AdminUser:
    return AdminUser(Identity(user_id="admin_1", username="chefe", role="admin"))


@pytest.fixture()
def seed():
    """Insert a record straight into the SQLite store, bypassing business rules."""
    store = SQLiteRecordStore()

    def _seed(**fields: Any) -> Dict[str, Any]:
        record = {
            "title": "1001",
            "service_type": "PREP",
            "price": 2.0,
            "user_id": "user_1",
            "username": "ana",
            "include_in_total": True,
            "admin_override": False,
        }
        record.update(fields)
        return store.insert(record)

    return _seed


class RecordingStore(RecordStore):
    """Record store double that logs every call and can be told to fail."""

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None) -> None:
        self.rows = rows or []
        self.calls: List[str] = []
        self.fail_on: set[str] = set()
        self.fail_ids: set[str] = set()

    def _call(self, name: str, record_id: Optional[str] = None) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise RemoteError(f"{name} failed")
        if record_id in self.fail_ids:
            raise RemoteError(f"{name} {record_id} failed")

    def select(self, filters=None, order_desc=False):
        self._call("select")
        filters = filters or {}
        return [
            dict(row) for row in self.rows
            if all(row.get(key) == value for key, value in filters.items())
        ]

    def insert(self, record):
        self._call("insert")
        created = {
            "id": f"rec_{len(self.rows) + 1}",
            "created_at": "2024-03-01T12:00:00+00:00",
            "version": 1,
            **record,
        }
        self.rows.append(created)
        return dict(created)

    def update(self, record_id, fields, expected_version):
        self._call("update", record_id)
        for row in self.rows:
            if row["id"] == record_id and row["version"] == expected_version:
                row.update(fields)
                row["version"] += 1
                return dict(row)
        return None

    def delete(self, record_id, expected_version):
        self._call("delete", record_id)
        before = len(self.rows)
        self.rows = [
            row for row in self.rows
            if not (row["id"] == record_id and row["version"] == expected_version)
        ]
        return len(self.rows) < before


@pytest.fixture()
def recording_store(monkeypatch) -> RecordingStore:
    store = RecordingStore()
    monkeypatch.setattr(service_record_service, "get_store", lambda: store)
    return store


@pytest.fixture()
def user_token() -> str:
    return create_identity_token({"sub": "user_1", "username": "ana", "full_name": "Ana Souza"})


@pytest.fixture()
def admin_token() -> str:
    return create_identity_token({"sub": "admin_1", "username": "chefe", "role": "admin"})


@pytest.fixture()
def client() -> TestClient:
    from service_tracker_api.app.main import app

    return TestClient(app)


@pytest.fixture()
def user_headers(user_token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {user_token}"}


@pytest.fixture()
def admin_headers(admin_token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {admin_token}"}
