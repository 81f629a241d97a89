# fiscal_tracker/api/v1/deps.py
"""FastAPI dependencies for the v1 API layer."""

from __future__ import annotations

import re
import uuid
from datetime import date

from fastapi import Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fiscal_tracker.core import clock
from fiscal_tracker.core.db import get_db
from fiscal_tracker.domain.models.fiscal import Dossier
from fiscal_tracker.infrastructure.db.repositories import DossierRepository

PERIOD_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def get_today() -> date:
    """One clock reading per request; every view of the request shares it."""
    return clock.today()


def check_period(period: str) -> str:
    if not PERIOD_RE.match(period):
        raise HTTPException(status_code=400, detail=f"Invalid period: {period}")
    return period


def get_branch_id(branch_id: str | None = Query(None)) -> str | None:
    if branch_id is None:
        return None
    try:
        uuid.UUID(branch_id)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid branch_id: {branch_id}")
    return branch_id


async def get_dossier(dossier_id: str, db: AsyncSession = Depends(get_db)) -> Dossier:
    dossier = await DossierRepository(db).get(dossier_id)
    if dossier is None:
        raise HTTPException(status_code=404, detail="Dossier not found")
    return dossier
