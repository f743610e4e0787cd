"""
In‑memory board of service records for one signed‑in caller.

The board mirrors what a dashboard table holds: the loaded records,
which records are currently being authorized or deleted, and the last
error message.  Every action calls the record service first and only
touches local state after the call succeeded, so a failure leaves the
records exactly as they were and the action can simply be retried.
Actions on different records only ever touch their own entry.
"""

import logging
from datetime import datetime
from typing import List, Optional, Set, Tuple

from ..core.errors import ServiceTrackerError
from ..core.security import Caller
from ..schemas.service import ListScope, ServiceCreate, ServiceRead
from .aggregation_service import MonthGroup, group_by_month
from .service_record_service import ServiceRecordService


logger = logging.getLogger(__name__)


class ServiceBoard:
    def __init__(self, caller: Caller, scope: ListScope = ListScope.DEFAULT) -> None:
        self.caller = caller
        self.scope = scope
        self.records: List[ServiceRead] = []
        self.authorizing: Set[str] = set()
        self.deleting: Set[str] = set()
        self.error: Optional[str] = None

    def months(self) -> List[Tuple[str, MonthGroup]]:
        """Group the current records by month, recomputed on every call."""
        return group_by_month(self.records)

    def dismiss_error(self) -> None:
        self.error = None

    async def load(self) -> List[ServiceRead]:
        try:
            records = await ServiceRecordService.list_services(self.caller, self.scope)
        except ServiceTrackerError as exc:
            self.error = str(exc)
            raise
        self.records = records
        self.error = None
        return records

    async def create(self, data: ServiceCreate) -> ServiceRead:
        """Submit a new record and append it to the board on success."""
        try:
            created = await ServiceRecordService.create_service(self.caller, data)
        except ServiceTrackerError as exc:
            self.error = str(exc)
            raise
        self.records = self.records + [created]
        self.error = None
        return created

    async def authorize(self, record_id: str) -> ServiceRead:
        return await self._toggle(record_id, ServiceRecordService.authorize)

    async def revoke(self, record_id: str) -> ServiceRead:
        return await self._toggle(record_id, ServiceRecordService.revoke)

    async def _toggle(self, record_id: str, operation) -> ServiceRead:
        self.authorizing.add(record_id)
        try:
            updated = await operation(self.caller, record_id, self._version_of(record_id))
        except ServiceTrackerError as exc:
            self.error = str(exc)
            raise
        finally:
            self.authorizing.discard(record_id)
        self.records = [updated if r.id == record_id else r for r in self.records]
        self.error = None
        return updated

    async def delete(self, record_id: str, now: Optional[datetime] = None) -> None:
        self.deleting.add(record_id)
        try:
            await ServiceRecordService.delete(
                self.caller, record_id, self._version_of(record_id), now=now
            )
        except ServiceTrackerError as exc:
            self.error = str(exc)
            raise
        finally:
            self.deleting.discard(record_id)
        self.records = [r for r in self.records if r.id != record_id]
        self.error = None

    def _version_of(self, record_id: str) -> Optional[int]:
        for record in self.records:
            if record.id == record_id:
                return record.version
        return None
