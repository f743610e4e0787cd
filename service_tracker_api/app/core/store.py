"""
Record store backends for the ``services`` table.

The service layer talks to a single logical table through four
operation shapes: ``select``, ``insert``, ``update`` and ``delete``.
Two backends implement them:

* :class:`SQLiteRecordStore` keeps records in the embedded SQLite
  database managed by :mod:`service_tracker_api.app.core.db`.
* :class:`RestRecordStore` talks to a hosted PostgREST‑style data API
  (``/rest/v1/services?title=eq.1001``) using ``requests``.

Stores own no business rules.  Every backend failure is raised as
:class:`~service_tracker_api.app.core.errors.RemoteError` so callers
can leave their state untouched and let the user retry.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from .config import settings
from .db import get_connection
from .errors import RemoteError


logger = logging.getLogger(__name__)

# Columns ``select`` may filter on with equality.
FILTERABLE_COLUMNS = {"id", "user_id", "title", "include_in_total"}

COLUMNS = (
    "id",
    "title",
    "service_type",
    "price",
    "user_id",
    "username",
    "include_in_total",
    "admin_override",
    "created_at",
    "version",
)


def _normalize(row: Dict[str, Any]) -> Dict[str, Any]:
    """Coerce a raw row into plain Python types."""
    record = {key: row.get(key) for key in COLUMNS}
    record["id"] = str(record["id"])
    record["price"] = float(record["price"] or 0)
    record["include_in_total"] = bool(record["include_in_total"])
    record["admin_override"] = bool(record["admin_override"])
    record["version"] = int(record["version"] or 1)
    return record


class RecordStore:
    """Interface shared by the record store backends."""

    def select(
        self,
        filters: Optional[Dict[str, Any]] = None,
        order_desc: bool = False,
    ) -> List[Dict[str, Any]]:
        """Return records matching every equality filter, ordered by ``created_at``."""
        raise NotImplementedError

    def insert(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a record and return it with ``id``, ``created_at`` and ``version`` assigned."""
        raise NotImplementedError

    def update(
        self, record_id: str, fields: Dict[str, Any], expected_version: int
    ) -> Optional[Dict[str, Any]]:
        """Apply ``fields`` if the stored version matches; return the updated record or ``None``."""
        raise NotImplementedError

    def delete(self, record_id: str, expected_version: int) -> bool:
        """Remove the record if the stored version matches; return whether a row was removed."""
        raise NotImplementedError

    @staticmethod
    def _check_filters(filters: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        filters = filters or {}
        unknown = set(filters) - FILTERABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unsupported filter columns: {sorted(unknown)}")
        return filters


class SQLiteRecordStore(RecordStore):
    """Record store backed by the local SQLite database."""

    def select(
        self,
        filters: Optional[Dict[str, Any]] = None,
        order_desc: bool = False,
    ) -> List[Dict[str, Any]]:
        filters = self._check_filters(filters)
        query = f"SELECT {', '.join(COLUMNS)} FROM services"
        params: list = []
        where_clauses: list[str] = []
        for column, value in filters.items():
            where_clauses.append(f"{column} = ?")
            params.append(int(value) if isinstance(value, bool) else value)
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        query += " ORDER BY created_at " + ("DESC" if order_desc else "ASC")
        try:
            conn = get_connection()
        except sqlite3.Error as exc:
            raise RemoteError(f"Record store unavailable: {exc}") from exc
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
            return [_normalize(dict(row)) for row in rows]
        except sqlite3.Error as exc:
            raise RemoteError(f"Failed to load services: {exc}") from exc
        finally:
            conn.close()

    def insert(self, record: Dict[str, Any]) -> Dict[str, Any]:
        created = {
            "id": uuid.uuid4().hex,
            "created_at": record.get("created_at")
            or datetime.now(timezone.utc).isoformat(),
            "version": 1,
        }
        created.update({k: v for k, v in record.items() if k not in created})
        row = _normalize(created)
        try:
            conn = get_connection()
        except sqlite3.Error as exc:
            raise RemoteError(f"Record store unavailable: {exc}") from exc
        try:
            conn.execute(
                f"INSERT INTO services ({', '.join(COLUMNS)}) VALUES ({', '.join('?' * len(COLUMNS))})",
                tuple(
                    int(row[c]) if isinstance(row[c], bool) else row[c] for c in COLUMNS
                ),
            )
            conn.commit()
            return row
        except sqlite3.Error as exc:
            raise RemoteError(f"Failed to create service: {exc}") from exc
        finally:
            conn.close()

    def update(
        self, record_id: str, fields: Dict[str, Any], expected_version: int
    ) -> Optional[Dict[str, Any]]:
        assignments = []
        values: list = []
        for key, value in fields.items():
            if key not in COLUMNS or key in {"id", "created_at", "version"}:
                raise ValueError(f"Column {key} cannot be updated")
            assignments.append(f"{key} = ?")
            values.append(int(value) if isinstance(value, bool) else value)
        assignments.append("version = version + 1")
        values.extend([record_id, expected_version])
        try:
            conn = get_connection()
        except sqlite3.Error as exc:
            raise RemoteError(f"Record store unavailable: {exc}") from exc
        try:
            cursor = conn.execute(
                f"UPDATE services SET {', '.join(assignments)} WHERE id = ? AND version = ?",
                tuple(values),
            )
            conn.commit()
            if cursor.rowcount == 0:
                return None
            row = conn.execute(
                f"SELECT {', '.join(COLUMNS)} FROM services WHERE id = ?", (record_id,)
            ).fetchone()
            return _normalize(dict(row)) if row else None
        except sqlite3.Error as exc:
            raise RemoteError(f"Failed to update service {record_id}: {exc}") from exc
        finally:
            conn.close()

    def delete(self, record_id: str, expected_version: int) -> bool:
        try:
            conn = get_connection()
        except sqlite3.Error as exc:
            raise RemoteError(f"Record store unavailable: {exc}") from exc
        try:
            cursor = conn.execute(
                "DELETE FROM services WHERE id = ? AND version = ?",
                (record_id, expected_version),
            )
            conn.commit()
            return cursor.rowcount > 0
        except sqlite3.Error as exc:
            raise RemoteError(f"Failed to delete service {record_id}: {exc}") from exc
        finally:
            conn.close()


class RestRecordStore(RecordStore):
    """Record store backed by a hosted PostgREST‑style data API.

    Filters are sent as ``column=eq.value`` query parameters and
    mutations ask for ``Prefer: return=representation`` so that the
    affected rows come back in the response body.  An empty body on
    ``PATCH`` or ``DELETE`` means no row matched the id and version.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str = "",
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not base_url:
            raise ValueError("REMOTE_STORE_URL must be set to use the rest record store")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    @staticmethod
    def _encode(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def _request(
        self,
        method: str,
        *,
        params: Dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Any:
        """Perform an HTTP request against the ``services`` table.

        Returns the parsed JSON body (``None`` when empty).  Raises
        ``RemoteError`` on transport failures and error responses.
        """
        url = f"{self.base_url}/rest/v1/services"
        headers: Dict[str, str] = {
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        try:
            logger.debug("Sending %s request to %s", method, url)
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            if response.content:
                return response.json()
            return None
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            message = ""
            if exc.response is not None:
                try:
                    err_json = exc.response.json()
                    message = err_json.get("message") or err_json.get("detail") or str(err_json)
                except ValueError:
                    message = exc.response.text
            if not message:
                message = str(exc)
            logger.error("Record store request failed (%s): %s", status, message)
            raise RemoteError(message) from exc
        except requests.RequestException as exc:
            logger.error("Record store request failed: %s", exc)
            raise RemoteError(str(exc)) from exc

    def select(
        self,
        filters: Optional[Dict[str, Any]] = None,
        order_desc: bool = False,
    ) -> List[Dict[str, Any]]:
        filters = self._check_filters(filters)
        params = {"select": "*", "order": "created_at.desc" if order_desc else "created_at.asc"}
        for column, value in filters.items():
            params[column] = f"eq.{self._encode(value)}"
        data = self._request("GET", params=params)
        return [_normalize(row) for row in (data or [])]

    def insert(self, record: Dict[str, Any]) -> Dict[str, Any]:
        data = self._request("POST", json_body=[record])
        if not data:
            raise RemoteError("Record store returned no created service")
        return _normalize(data[0])

    def update(
        self, record_id: str, fields: Dict[str, Any], expected_version: int
    ) -> Optional[Dict[str, Any]]:
        body = dict(fields)
        body["version"] = expected_version + 1
        data = self._request(
            "PATCH",
            params={"id": f"eq.{record_id}", "version": f"eq.{expected_version}"},
            json_body=body,
        )
        if not data:
            return None
        return _normalize(data[0])

    def delete(self, record_id: str, expected_version: int) -> bool:
        data = self._request(
            "DELETE",
            params={"id": f"eq.{record_id}", "version": f"eq.{expected_version}"},
        )
        return bool(data)


def get_store() -> RecordStore:
    """Build the record store selected by ``settings.record_store``."""
    backend = settings.record_store.lower()
    if backend == "sqlite":
        return SQLiteRecordStore()
    if backend == "rest":
        return RestRecordStore(
            base_url=settings.remote_store_url,
            api_key=settings.remote_store_key,
            timeout=settings.remote_store_timeout,
        )
    raise ValueError(f"Unknown record store backend: {settings.record_store}")
