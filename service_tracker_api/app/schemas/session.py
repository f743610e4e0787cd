"""
Pydantic models for the signed‑in session and the selected view.
"""

from typing import List, Optional

from pydantic import BaseModel


class ViewRead(BaseModel):
    """The single view the client should render.

    ``view`` is one of ``loading``, ``sign_in`` or ``dashboard``.  Tabs
    and the greeting are only populated for the dashboard.
    """

    view: str
    tabs: List[str] = []
    greeting: Optional[str] = None


class CallerRead(BaseModel):
    user_id: str
    username: str
    display_name: str
    is_admin: bool
