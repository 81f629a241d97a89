# fiscal_tracker/api/v1/__init__.py
"""
Versioned API v1, aggregating the sub-routers under ``/api/v1``.

Usage in ``main.py``::

    from fiscal_tracker.api.v1 import v1_router
    app.include_router(v1_router)
"""

from fastapi import APIRouter

from fiscal_tracker.api.v1.routes.dashboard import router as dashboard_router
from fiscal_tracker.api.v1.routes.obligations import router as obligations_router
from fiscal_tracker.api.v1.routes.tva import router as tva_router

v1_router = APIRouter(prefix="/api/v1")

v1_router.include_router(dashboard_router)
v1_router.include_router(obligations_router)
v1_router.include_router(tva_router)

__all__ = ["v1_router"]
