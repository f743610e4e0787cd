"""
Top‑level router for version 1 of the API.

This router aggregates domain‑specific routers under a unified prefix.
When new endpoints are added, update this file to include their
routers.
"""

from fastapi import APIRouter

from .endpoints import audit, services, session

router = APIRouter()

router.include_router(session.router, prefix="/session", tags=["session"])
router.include_router(services.router, prefix="/services", tags=["services"])
router.include_router(audit.router, prefix="/audit", tags=["audit"])
