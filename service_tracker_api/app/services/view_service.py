"""
Role‑gated view selection.

Decides which single view a client renders from the identity
provider's tri‑state and the caller's role claim.  No side effects.
"""

from typing import List, Optional

from ..core.security import AuthState, Identity, is_admin_role
from ..schemas.session import ViewRead

BASE_TABS = ["services", "analytics", "history"]
ADMIN_TABS = ["admin-all", "admin-pending"]


def dashboard_tabs(role: Optional[str]) -> List[str]:
    if is_admin_role(role):
        return BASE_TABS + ADMIN_TABS
    return list(BASE_TABS)


def select_view(auth_state: AuthState, identity: Optional[Identity] = None) -> ViewRead:
    """Select exactly one of the loading, sign‑in or dashboard views.

    A loading state never falls through to either signed‑in or
    signed‑out rendering.  A signed‑in state without a verified identity
    is treated as signed out.
    """
    if auth_state is AuthState.LOADING:
        return ViewRead(view="loading")
    if auth_state is AuthState.SIGNED_OUT or identity is None:
        return ViewRead(view="sign_in")
    return ViewRead(
        view="dashboard",
        tabs=dashboard_tabs(identity.role),
        greeting=identity.display_name,
    )
