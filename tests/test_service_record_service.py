"""Unit tests for creating, listing, authorizing and deleting service records."""

from __future__ import annotations

import asyncio
import threading

import pytest

from service_tracker_api.app.core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    RemoteError,
    ValidationError,
)
from service_tracker_api.app.core.store import RecordStore
from service_tracker_api.app.schemas.service import ListScope, ServiceCreate, ServiceType
from service_tracker_api.app.services.audit_service import AuditService
from service_tracker_api.app.services import service_record_service
from service_tracker_api.app.services.service_record_service import ServiceRecordService


def submission(title: str = "1001", **fields) -> ServiceCreate:
    return ServiceCreate(service_type=fields.pop("service_type", ServiceType.PREP), title=title, **fields)


@pytest.mark.asyncio
async def test_first_record_is_included(regular_user) -> None:
    created = await ServiceRecordService.create_service(regular_user, submission("1001"))

    assert created.include_in_total is True
    assert created.admin_override is False
    assert created.price == 2.0
    assert created.user_id == "user_1"
    assert created.username == "ana"
    assert created.version == 1


@pytest.mark.asyncio
async def test_title_is_trimmed_and_price_comes_from_type(regular_user) -> None:
    created = await ServiceRecordService.create_service(
        regular_user, submission("  77 ", service_type=ServiceType.SECOND_ASSEMBLY)
    )

    assert created.title == "77"
    assert created.price == 2.5


@pytest.mark.asyncio
async def test_duplicate_from_regular_user_is_excluded(regular_user, other_user) -> None:
    await ServiceRecordService.create_service(regular_user, submission("1001"))

    plain = await ServiceRecordService.create_service(other_user, submission("1001"))
    overridden = await ServiceRecordService.create_service(
        other_user, submission("1001", admin_override=True)
    )

    assert plain.include_in_total is False
    assert overridden.include_in_total is False
    assert overridden.admin_override is False
    assert other_user.identity.record_username == overridden.username == "Bruno"


@pytest.mark.asyncio
async def test_duplicate_with_admin_override_is_included(regular_user, admin_user) -> None:
    await ServiceRecordService.create_service(regular_user, submission("1001"))

    without = await ServiceRecordService.create_service(admin_user, submission("1001"))
    with_override = await ServiceRecordService.create_service(
        admin_user, submission("1001", admin_override=True)
    )

    assert without.include_in_total is False
    assert with_override.include_in_total is True
    assert with_override.admin_override is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "data",
    [
        ServiceCreate(service_type=ServiceType.PREP, title=""),
        ServiceCreate(service_type=ServiceType.PREP, title="   "),
        ServiceCreate(service_type=ServiceType.PREP, title="1001", price=-1),
        ServiceCreate(service_type=ServiceType.PREP, title="1001", price=float("inf")),
        ServiceCreate(service_type=ServiceType.PREP, title="1001", price=float("-inf")),
        ServiceCreate(service_type=ServiceType.PREP, title="1001", price=float("nan")),
    ],
)
async def test_invalid_submission_never_reaches_store(regular_user, recording_store, data) -> None:
    with pytest.raises(ValidationError):
        await ServiceRecordService.create_service(regular_user, data)

    assert recording_store.calls == []


@pytest.mark.asyncio
async def test_remote_failure_leaves_nothing_and_can_be_retried(regular_user, recording_store) -> None:
    recording_store.fail_on.add("insert")

    with pytest.raises(RemoteError):
        await ServiceRecordService.create_service(regular_user, submission("1001"))
    assert recording_store.rows == []

    recording_store.fail_on.clear()
    created = await ServiceRecordService.create_service(regular_user, submission("1001"))

    assert created.include_in_total is True
    assert len(recording_store.rows) == 1


@pytest.mark.asyncio
async def test_list_scopes(regular_user, other_user, admin_user, seed) -> None:
    seed(title="1", user_id="user_1", created_at="2024-03-01T10:00:00+00:00")
    seed(title="2", user_id="user_2", include_in_total=False, created_at="2024-03-02T10:00:00+00:00")
    seed(title="3", user_id="user_1", created_at="2024-03-03T10:00:00+00:00")

    own = await ServiceRecordService.list_services(regular_user)
    everything = await ServiceRecordService.list_services(admin_user, ListScope.ADMIN_ALL)
    pending = await ServiceRecordService.list_services(admin_user, ListScope.ADMIN_PENDING)

    assert [r.title for r in own] == ["3", "1"]
    assert [r.title for r in everything] == ["3", "2", "1"]
    assert [r.title for r in pending] == ["2"]


@pytest.mark.asyncio
async def test_admin_scopes_are_rejected_for_regular_users(regular_user) -> None:
    with pytest.raises(AuthorizationError):
        await ServiceRecordService.list_services(regular_user, ListScope.ADMIN_ALL)
    with pytest.raises(AuthorizationError):
        await ServiceRecordService.list_services(regular_user, ListScope.ADMIN_PENDING)


@pytest.mark.asyncio
async def test_authorize_and_revoke(admin_user, seed) -> None:
    record = seed(title="1001", include_in_total=False)

    authorized = await ServiceRecordService.authorize(admin_user, record["id"])
    assert authorized.include_in_total is True
    assert authorized.admin_override is True
    assert authorized.version == 2

    revoked = await ServiceRecordService.revoke(admin_user, record["id"])
    assert revoked.include_in_total is False
    assert revoked.admin_override is False
    assert revoked.version == 3

    logs = await AuditService.list_logs(object_id=record["id"])
    assert [log["action"] for log in logs] == ["revoke", "authorize"]
    assert logs[0]["user_id"] == "admin_1"


@pytest.mark.asyncio
async def test_toggles_are_rejected_for_regular_users(regular_user, seed) -> None:
    record = seed(title="1001", include_in_total=False)

    with pytest.raises(AuthorizationError):
        await ServiceRecordService.authorize(regular_user, record["id"])
    with pytest.raises(AuthorizationError):
        await ServiceRecordService.revoke(regular_user, record["id"])

    unchanged = await ServiceRecordService.get_service(record["id"])
    assert unchanged.include_in_total is False
    assert unchanged.version == 1


@pytest.mark.asyncio
async def test_toggle_with_stale_version_conflicts(admin_user, seed) -> None:
    record = seed(title="1001", include_in_total=False)
    await ServiceRecordService.authorize(admin_user, record["id"], expected_version=1)

    with pytest.raises(ConflictError):
        await ServiceRecordService.revoke(admin_user, record["id"], expected_version=1)

    current = await ServiceRecordService.get_service(record["id"])
    assert current.include_in_total is True


@pytest.mark.asyncio
async def test_toggle_unknown_record(admin_user) -> None:
    with pytest.raises(NotFoundError):
        await ServiceRecordService.authorize(admin_user, "missing")


@pytest.mark.asyncio
async def test_toggles_on_different_records_do_not_interfere(admin_user, seed) -> None:
    first = seed(title="1", include_in_total=False)
    second = seed(title="2", include_in_total=False)

    await ServiceRecordService.authorize(admin_user, first["id"])

    untouched = await ServiceRecordService.get_service(second["id"])
    assert untouched.include_in_total is False
    assert untouched.version == 1


@pytest.mark.asyncio
async def test_delete_current_month_record(admin_user, regular_user) -> None:
    created = await ServiceRecordService.create_service(regular_user, submission("1001"))

    await ServiceRecordService.delete(admin_user, created.id)

    with pytest.raises(NotFoundError):
        await ServiceRecordService.get_service(created.id)
    logs = await AuditService.list_logs(action="delete")
    assert logs[0]["object_id"] == created.id


@pytest.mark.asyncio
async def test_delete_prior_month_record_is_rejected(admin_user, seed) -> None:
    record = seed(title="1001", created_at="2024-01-15T12:00:00+00:00")

    with pytest.raises(AuthorizationError):
        await ServiceRecordService.delete(admin_user, record["id"])

    assert (await ServiceRecordService.get_service(record["id"])).title == "1001"


@pytest.mark.asyncio
async def test_delete_by_regular_user_is_rejected(regular_user) -> None:
    created = await ServiceRecordService.create_service(regular_user, submission("1001"))

    with pytest.raises(AuthorizationError):
        await ServiceRecordService.delete(regular_user, created.id)

    assert (await ServiceRecordService.get_service(created.id)).id == created.id


@pytest.mark.asyncio
async def test_remote_failure_on_update_keeps_record(admin_user, recording_store) -> None:
    recording_store.rows.append(
        {
            "id": "rec_1",
            "title": "1001",
            "service_type": "PREP",
            "price": 2.0,
            "user_id": "user_1",
            "username": "ana",
            "created_at": "2024-03-01T12:00:00+00:00",
            "include_in_total": False,
            "admin_override": False,
            "version": 1,
        }
    )
    recording_store.fail_on.add("update")

    with pytest.raises(RemoteError):
        await ServiceRecordService.authorize(admin_user, "rec_1")

    assert recording_store.rows[0]["include_in_total"] is False
    assert recording_store.rows[0]["version"] == 1


class GatedStore(RecordStore):
    """Store whose ``select`` blocks its thread until the test releases it."""

    def __init__(self) -> None:
        self.started = threading.Event()
        self.release = threading.Event()
        self.released = None

    def select(self, filters=None, order_desc=False):
        self.started.set()
        self.released = self.release.wait(timeout=2)
        return []


@pytest.mark.asyncio
async def test_slow_store_call_does_not_block_event_loop(monkeypatch) -> None:
    store = GatedStore()
    monkeypatch.setattr(service_record_service, "get_store", lambda: store)

    lookup = asyncio.create_task(ServiceRecordService.find_duplicates("1001"))
    while not store.started.is_set():
        await asyncio.sleep(0.01)
    # Only reachable while the store call is still in flight on a worker thread.
    store.release.set()

    assert await lookup == []
    assert store.released is True
