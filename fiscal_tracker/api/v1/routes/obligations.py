# fiscal_tracker/api/v1/routes/obligations.py
"""
V1 endpoints for the obligations of a single dossier.
"""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fiscal_tracker.core.db import get_db
from fiscal_tracker.domain.models.fiscal import Dossier, TacheType
from fiscal_tracker.domain.services.calendar_rules import period_of
from fiscal_tracker.domain.services.obligation_lifecycle import default_due_date
from fiscal_tracker.domain.services.reporting import dossier_task_stats
from fiscal_tracker.domain.services.urgency import (
    DETAIL_URGENT_DAYS,
    annotate,
    status_tone,
)
from fiscal_tracker.domain.services.visibility import filter_visible
from fiscal_tracker.infrastructure.db.repositories import ObligationRepository

from fiscal_tracker.api.v1.deps import check_period, get_dossier, get_today
from fiscal_tracker.api.v1.envelope import ok
from fiscal_tracker.api.v1.schemas.obligations import ObligationUpsertRequest

logger = logging.getLogger("api.v1.obligations")

router = APIRouter(prefix="/dossiers/{dossier_id}", tags=["Obligations"])


def _parse_type(value: str) -> TacheType:
    try:
        return TacheType(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid obligation type: {value}")


@router.get("/obligations", summary="Visible obligations of a dossier")
async def list_obligations(
    year: int | None = Query(None, ge=2000, le=2100),
    dossier: Dossier = Depends(get_dossier),
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db),
):
    """Obligations in their visibility window, with detail-view urgency."""
    year = year or today.year
    taches = await ObligationRepository(db).list_for_dossier_year(dossier.id, year)
    visible = filter_visible(taches, today)

    items = []
    for annotated in annotate(visible, today, DETAIL_URGENT_DAYS):
        item = annotated.to_dict()
        item["tone"] = status_tone(annotated.tache, today).value
        items.append(item)

    return ok(data={
        "dossier_id": dossier.id,
        "year": year,
        "items": items,
        "stats": dossier_task_stats(visible, today).to_dict(),
    })


@router.post("/schedule", summary="Create the year's calendar obligations")
async def schedule(
    year: int = Query(..., ge=2000, le=2100),
    dossier: Dossier = Depends(get_dossier),
    db: AsyncSession = Depends(get_db),
):
    created = await ObligationRepository(db).insert_schedule(dossier, year)
    return ok(data={"dossier_id": dossier.id, "year": year, "created": created})


@router.put("/obligations/{tache_type}/{period}", summary="Create or update an obligation")
async def upsert_obligation(
    tache_type: str,
    period: str,
    body: ObligationUpsertRequest,
    dossier: Dossier = Depends(get_dossier),
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db),
):
    """``period`` is the month the obligation falls due."""
    check_period(period)
    kind = _parse_type(tache_type)
    repo = ObligationRepository(db)

    changes = body.changes()
    if "date_echeance" in changes:
        if period_of(changes["date_echeance"]) != period:
            raise HTTPException(
                status_code=400,
                detail=f"date_echeance {changes['date_echeance'].isoformat()} is not in {period}",
            )
    elif await repo.get(dossier.id, kind, period) is None:
        due = default_due_date(dossier, kind, period)
        if due is None:
            raise HTTPException(
                status_code=400,
                detail=f"No {kind.value} deadline for this dossier in {period}; send date_echeance",
            )
        changes["date_echeance"] = due

    try:
        tache = await repo.upsert_obligation(dossier.id, kind, period, changes, actor=body.actor_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    annotated = annotate([tache], today, DETAIL_URGENT_DAYS)[0]
    return ok(data=annotated.to_dict())
