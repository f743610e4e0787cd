"""
Service record endpoints for API v1.

Any signed‑in user may submit services and see their own history.
Listing every record, the pending queue, authorizing, revoking and
deleting are reserved for administrators; the service layer enforces
this with the caller resolved from the identity token.
"""

from typing import List, NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from service_tracker_api.app.core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    RemoteError,
    ServiceTrackerError,
    ValidationError,
)
from service_tracker_api.app.core.security import Caller, get_caller
from service_tracker_api.app.schemas.service import (
    SERVICE_PRICES,
    DuplicateCheckRead,
    ListScope,
    MonthGroupRead,
    ServiceCreate,
    ServiceRead,
    ServiceTypeRead,
    TypeSummaryRead,
)
from service_tracker_api.app.services.aggregation_service import (
    current_month_key,
    format_brl,
    group_by_month,
    summarize_by_type,
)
from service_tracker_api.app.services.duplicate_service import get_detector
from service_tracker_api.app.services.service_record_service import ServiceRecordService


router = APIRouter()

_STATUS_BY_ERROR = [
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (RemoteError, status.HTTP_502_BAD_GATEWAY),
]


def _raise_http(exc: ServiceTrackerError) -> NoReturn:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            raise HTTPException(status_code=status_code, detail=str(exc)) from exc
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


@router.get("/types", response_model=List[ServiceTypeRead])
async def list_service_types() -> List[ServiceTypeRead]:
    """Return the price table used when creating services."""
    return [
        ServiceTypeRead(service_type=service_type, label=service_type.label, price=price)
        for service_type, price in SERVICE_PRICES.items()
    ]


@router.get("/", response_model=List[ServiceRead])
async def list_services(
    scope: ListScope = Query(ListScope.DEFAULT),
    caller: Caller = Depends(get_caller),
) -> List[ServiceRead]:
    """List services, newest first.

    - **scope** — `default` (own services), `admin-all` or `admin-pending`.
    """
    try:
        return await ServiceRecordService.list_services(caller, scope)
    except ServiceTrackerError as e:
        _raise_http(e)


@router.get("/monthly", response_model=List[MonthGroupRead])
async def list_monthly(
    scope: ListScope = Query(ListScope.DEFAULT),
    caller: Caller = Depends(get_caller),
) -> List[MonthGroupRead]:
    """Group services by month with included and pending totals, latest month first."""
    try:
        records = await ServiceRecordService.list_services(caller, scope)
    except ServiceTrackerError as e:
        _raise_http(e)
    this_month = current_month_key()
    return [
        MonthGroupRead(
            month=month,
            count=group.count,
            included_total=group.included_total,
            pending_total=group.pending_total,
            included_total_display=format_brl(group.included_total),
            pending_total_display=format_brl(group.pending_total),
            is_current_month=month == this_month,
            services=group.records,
        )
        for month, group in group_by_month(records)
    ]


@router.get("/analytics", response_model=List[TypeSummaryRead])
async def service_analytics(
    scope: ListScope = Query(ListScope.DEFAULT),
    caller: Caller = Depends(get_caller),
) -> List[TypeSummaryRead]:
    """Count services and sum prices per service type."""
    try:
        records = await ServiceRecordService.list_services(caller, scope)
    except ServiceTrackerError as e:
        _raise_http(e)
    return [TypeSummaryRead(**vars(summary)) for summary in summarize_by_type(records)]


@router.get("/duplicates", response_model=DuplicateCheckRead)
async def check_duplicates(
    title: str = Query(""),
    caller: Caller = Depends(get_caller),
) -> DuplicateCheckRead:
    """Check whether a title already exists while the user is typing.

    Calls are debounced per user.  When a newer check from the same user
    arrives first, this one answers with ``superseded: true``.
    """
    try:
        result = await get_detector(caller.user_id).check(title)
    except ServiceTrackerError as e:
        _raise_http(e)
    if result is None:
        return DuplicateCheckRead(title=title.strip(), superseded=True)
    return DuplicateCheckRead(
        title=result.title,
        is_duplicate=result.is_duplicate,
        matches=result.matches,
    )


@router.post("/", response_model=ServiceRead, status_code=status.HTTP_201_CREATED)
async def create_service(
    service: ServiceCreate,
    caller: Caller = Depends(get_caller),
) -> ServiceRead:
    """Create a new service.

    Duplicated titles are stored but excluded from totals unless an
    administrator sets ``admin_override``.
    """
    try:
        return await ServiceRecordService.create_service(caller, service)
    except ServiceTrackerError as e:
        _raise_http(e)


@router.get("/{record_id}", response_model=ServiceRead)
async def get_service(record_id: str, caller: Caller = Depends(get_caller)) -> ServiceRead:
    try:
        service = await ServiceRecordService.get_service(record_id)
    except ServiceTrackerError as e:
        _raise_http(e)
    if service.user_id != caller.user_id and not caller.is_admin:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Service {record_id} not found")
    return service


@router.post("/{record_id}/authorize", response_model=ServiceRead)
async def authorize_service(
    record_id: str,
    version: Optional[int] = Query(None),
    caller: Caller = Depends(get_caller),
) -> ServiceRead:
    """Include a service in totals (admin only)."""
    try:
        return await ServiceRecordService.authorize(caller, record_id, version)
    except ServiceTrackerError as e:
        _raise_http(e)


@router.post("/{record_id}/revoke", response_model=ServiceRead)
async def revoke_service(
    record_id: str,
    version: Optional[int] = Query(None),
    caller: Caller = Depends(get_caller),
) -> ServiceRead:
    """Exclude a service from totals (admin only)."""
    try:
        return await ServiceRecordService.revoke(caller, record_id, version)
    except ServiceTrackerError as e:
        _raise_http(e)


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service(
    record_id: str,
    version: Optional[int] = Query(None),
    caller: Caller = Depends(get_caller),
) -> None:
    """Delete a service from the current month (admin only)."""
    try:
        await ServiceRecordService.delete(caller, record_id, version)
    except ServiceTrackerError as e:
        _raise_http(e)
    return None
