"""
Business logic for service records.

Creation applies the duplicate rule: a record whose title already
exists is excluded from monthly totals unless an administrator asked
for it to be included.  Administrators can later authorize or revoke
inclusion and may delete records created in the current calendar
month.  Every admin‑gated operation receives the resolved caller
explicitly and rejects non‑admins before touching the record store.
"""

import logging
import math
import sqlite3
from datetime import datetime
from typing import List, Optional

from fastapi.concurrency import run_in_threadpool

from ..core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ..core.security import Caller
from ..core.store import get_store
from ..schemas.service import ListScope, ServiceCreate, ServiceRead
from .aggregation_service import current_month_key, month_key
from .audit_service import AuditService


logger = logging.getLogger(__name__)


class ServiceRecordService:
    """Service for creating, listing, authorizing and deleting service records."""

    @classmethod
    async def find_duplicates(cls, title: str) -> List[ServiceRead]:
        """Return existing records whose title exactly equals the trimmed ``title``."""
        candidate = title.strip()
        if not candidate:
            return []
        rows = await run_in_threadpool(get_store().select, {"title": candidate})
        return [ServiceRead(**row) for row in rows]

    @classmethod
    async def list_services(
        cls, caller: Caller, scope: ListScope = ListScope.DEFAULT
    ) -> List[ServiceRead]:
        """List records visible in ``scope``, newest first.

        ``default`` returns the caller's own records; ``admin-all`` and
        ``admin-pending`` require an administrator.
        """
        if scope is ListScope.DEFAULT:
            filters = {"user_id": caller.user_id}
        elif not caller.is_admin:
            raise AuthorizationError("Only administrators can view all services")
        elif scope is ListScope.ADMIN_PENDING:
            filters = {"include_in_total": False}
        else:
            filters = {}
        rows = await run_in_threadpool(get_store().select, filters, order_desc=True)
        return [ServiceRead(**row) for row in rows]

    @classmethod
    async def get_service(cls, record_id: str) -> ServiceRead:
        rows = await run_in_threadpool(get_store().select, {"id": record_id})
        if not rows:
            raise NotFoundError(f"Service {record_id} not found")
        return ServiceRead(**rows[0])

    @classmethod
    async def create_service(cls, caller: Caller, data: ServiceCreate) -> ServiceRead:
        """Validate a submission and insert the new record.

        The title must not be blank and the price must be a finite,
        non‑negative number; both checks run before any call to the
        record store.  The duplicate lookup is repeated here rather
        than trusting an earlier check made while the user was typing.
        An override request from a non‑admin is ignored.

        Raises
        ------
        ValidationError
            Blank title, negative or non‑finite price.
        RemoteError
            The record store failed; nothing was created and the same
            submission can be retried.
        """
        title = data.title.strip()
        if not title:
            raise ValidationError("Title is required")
        price = data.price if data.price is not None else data.service_type.price
        if not math.isfinite(price):
            raise ValidationError("Price must be a finite number")
        if price < 0:
            raise ValidationError("Price must be greater than or equal to zero")

        duplicates = await cls.find_duplicates(title)
        is_duplicate = len(duplicates) > 0
        admin_override = bool(data.admin_override and caller.is_admin)
        include_in_total = not is_duplicate or admin_override

        created = await run_in_threadpool(
            get_store().insert,
            {
                "title": title,
                "service_type": data.service_type.value,
                "price": price,
                "user_id": caller.user_id,
                "username": caller.identity.record_username,
                "admin_override": admin_override,
                "include_in_total": include_in_total,
            },
        )
        logger.info(
            "User %s created service %s '%s' (duplicate=%s, included=%s)",
            caller.user_id,
            created["id"],
            title,
            is_duplicate,
            include_in_total,
        )
        return ServiceRead(**created)

    @classmethod
    async def authorize(
        cls, caller: Caller, record_id: str, expected_version: Optional[int] = None
    ) -> ServiceRead:
        """Include a record in totals on an administrator's authority."""
        return await cls._set_inclusion(caller, record_id, True, expected_version)

    @classmethod
    async def revoke(
        cls, caller: Caller, record_id: str, expected_version: Optional[int] = None
    ) -> ServiceRead:
        """Exclude a record from totals and clear its admin override."""
        return await cls._set_inclusion(caller, record_id, False, expected_version)

    @classmethod
    async def _set_inclusion(
        cls,
        caller: Caller,
        record_id: str,
        included: bool,
        expected_version: Optional[int],
    ) -> ServiceRead:
        action = "authorize" if included else "revoke"
        if not caller.is_admin:
            logger.warning("Non-admin %s tried to %s service %s", caller.user_id, action, record_id)
            raise AuthorizationError(f"Only administrators can {action} services")
        current = await cls.get_service(record_id)
        cls._check_version(current, expected_version)
        updated = await run_in_threadpool(
            get_store().update,
            record_id,
            {"include_in_total": included, "admin_override": included},
            expected_version=current.version,
        )
        if updated is None:
            raise ConflictError(f"Service {record_id} changed while it was being updated")
        logger.info("Admin %s %sd service %s", caller.user_id, action, record_id)
        await cls._audit(caller, action, record_id, {"title": current.title})
        return ServiceRead(**updated)

    @classmethod
    async def delete(
        cls,
        caller: Caller,
        record_id: str,
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> None:
        """Permanently remove a record created in the current calendar month.

        Only administrators may delete, and only records whose
        ``created_at`` falls in the month containing ``now`` (the server's
        local time when omitted).  Older records are kept.
        """
        if not caller.is_admin:
            logger.warning("Non-admin %s tried to delete service %s", caller.user_id, record_id)
            raise AuthorizationError("Only administrators can delete services")
        current = await cls.get_service(record_id)
        if month_key(current.created_at) != current_month_key(now):
            raise AuthorizationError("Only services from the current month can be deleted")
        cls._check_version(current, expected_version)
        deleted = await run_in_threadpool(
            get_store().delete, record_id, expected_version=current.version
        )
        if not deleted:
            raise ConflictError(f"Service {record_id} changed while it was being deleted")
        logger.info("Admin %s deleted service %s", caller.user_id, record_id)
        await cls._audit(caller, "delete", record_id, {"title": current.title})

    @staticmethod
    def _check_version(current: ServiceRead, expected_version: Optional[int]) -> None:
        if expected_version is not None and expected_version != current.version:
            raise ConflictError(
                f"Service {current.id} is at version {current.version}, expected {expected_version}"
            )

    @staticmethod
    async def _audit(caller: Caller, action: str, record_id: str, details: dict) -> None:
        try:
            await AuditService.log(
                user_id=caller.user_id,
                action=action,
                object_type="service",
                object_id=record_id,
                details=details,
            )
        except sqlite3.Error:
            # Audit failures must not undo an action the store already applied.
            logger.exception("Failed to write audit log for %s on service %s", action, record_id)
