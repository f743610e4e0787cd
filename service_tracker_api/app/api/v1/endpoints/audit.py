"""
Audit log endpoints for API v1.

Administrators can review who authorized, revoked or deleted service
records.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from service_tracker_api.app.core.security import Caller, get_caller
from service_tracker_api.app.services.audit_service import AuditService


router = APIRouter()


@router.get("/", response_model=List[Dict[str, Any]])
async def list_audit_logs(
    user_id: Optional[str] = Query(None),
    object_id: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    caller: Caller = Depends(get_caller),
) -> List[Dict[str, Any]]:
    """List audit records, newest first (admin only).

    - **user_id**, **object_id**, **action** — equality filters.
    - **start_date**, **end_date** — ISO date bounds on the timestamp.
    - **limit**, **offset** — pagination.
    """
    if not caller.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
    return await AuditService.list_logs(
        user_id=user_id,
        object_id=object_id,
        action=action,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
