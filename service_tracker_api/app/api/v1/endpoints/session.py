"""
Session endpoints for API v1.

``/view`` tells the client which single view to render and is
reachable without a token.  ``/me`` describes the signed‑in caller.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from service_tracker_api.app.core.security import (
    AuthState,
    Caller,
    Identity,
    get_caller,
    get_optional_identity,
)
from service_tracker_api.app.schemas.session import CallerRead, ViewRead
from service_tracker_api.app.services.view_service import select_view


router = APIRouter()


@router.get("/view", response_model=ViewRead)
async def get_view(
    state: Optional[AuthState] = Query(None),
    identity: Optional[Identity] = Depends(get_optional_identity),
) -> ViewRead:
    """Select the loading, sign‑in or dashboard view.

    Clients whose identity SDK is still initialising may report
    ``state=loading``.  Otherwise the state is derived from the bearer
    token: a valid token means signed in, anything else signed out.
    """
    if state is not AuthState.LOADING:
        state = AuthState.SIGNED_IN if identity is not None else AuthState.SIGNED_OUT
    return select_view(state, identity)


@router.get("/me", response_model=CallerRead)
async def get_me(caller: Caller = Depends(get_caller)) -> CallerRead:
    return CallerRead(
        user_id=caller.user_id,
        username=caller.identity.record_username,
        display_name=caller.identity.display_name,
        is_admin=caller.is_admin,
    )
