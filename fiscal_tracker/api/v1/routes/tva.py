# fiscal_tracker/api/v1/routes/tva.py
"""
V1 endpoints for a dossier's VAT workflow: the year matrix, step toggles and
amount / credit / note edits.
"""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fiscal_tracker.core.db import get_db
from fiscal_tracker.domain.errors import UnknownStepError
from fiscal_tracker.domain.models.fiscal import Dossier
from fiscal_tracker.domain.services.calendar_rules import REGIME_LABELS, tva_regime
from fiscal_tracker.domain.services.tva_workflow import (
    TVA_STEPS,
    next_step,
    parse_step,
    period_status,
    year_matrix,
    year_totals,
)
from fiscal_tracker.infrastructure.db.repositories import TVAHistoryRepository

from fiscal_tracker.api.v1.deps import check_period, get_dossier, get_today
from fiscal_tracker.api.v1.envelope import ok
from fiscal_tracker.api.v1.schemas.tva import StepToggleRequest, TVADetailsRequest

logger = logging.getLogger("api.v1.tva")

router = APIRouter(prefix="/dossiers/{dossier_id}/tva", tags=["TVA"])


def _record_response(dossier: Dossier, period: str, record) -> dict:
    step = next_step(record)
    return {
        "period": period,
        "status": period_status(dossier, period, record).value,
        "next_step": step.value if step else None,
        "record": record.model_dump(mode="json"),
    }


@router.get("", summary="VAT matrix and totals for a year")
async def tva_year(
    year: int | None = Query(None, ge=2000, le=2100),
    dossier: Dossier = Depends(get_dossier),
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db),
):
    year = year or today.year
    records = await TVAHistoryRepository(db).list_for_year(dossier.id, year)
    regime = tva_regime(dossier)
    return ok(data={
        "dossier_id": dossier.id,
        "year": year,
        "regime": regime,
        "regime_label": REGIME_LABELS[regime],
        "steps": [{"key": s.value, "label": label} for s, label in TVA_STEPS],
        "periods": [row.to_dict() for row in year_matrix(dossier, year, records)],
        "totals": year_totals(dossier, year, records).to_dict(),
    })


@router.put("/{period}/steps/{step}", summary="Set or clear one workflow step")
async def toggle_step(
    period: str,
    step: str,
    body: StepToggleRequest,
    dossier: Dossier = Depends(get_dossier),
    db: AsyncSession = Depends(get_db),
):
    check_period(period)
    try:
        tva_step = parse_step(step)
    except UnknownStepError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    record = await TVAHistoryRepository(db).toggle_step(
        dossier.id, period, tva_step, body.value, actor=body.actor_id
    )
    return ok(data=_record_response(dossier, period, record))


@router.put("/{period}", summary="Edit amount, credit or note")
async def update_details(
    period: str,
    body: TVADetailsRequest,
    dossier: Dossier = Depends(get_dossier),
    db: AsyncSession = Depends(get_db),
):
    check_period(period)
    record = await TVAHistoryRepository(db).update_details(
        dossier.id,
        period,
        montant=body.montant,
        credit=body.credit,
        note=body.note,
    )
    return ok(data=_record_response(dossier, period, record))
