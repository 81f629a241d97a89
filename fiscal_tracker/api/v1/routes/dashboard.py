# fiscal_tracker/api/v1/routes/dashboard.py
"""
Portfolio views: the dashboard, the obligation matrix and the VAT board.
"""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fiscal_tracker.config.settings import settings
from fiscal_tracker.core.db import get_db
from fiscal_tracker.domain.models.fiscal import TacheType
from fiscal_tracker.domain.services.calendar_rules import (
    period_of,
    previous_period,
    rolling_months,
)
from fiscal_tracker.domain.services.reporting import (
    build_dashboard,
    obligation_amount_totals,
    obligation_matrix,
)
from fiscal_tracker.domain.services.tva_workflow import period_board
from fiscal_tracker.infrastructure.db.repositories import (
    CollaboratorRepository,
    DossierRepository,
    ObligationRepository,
    TVAHistoryRepository,
)

from fiscal_tracker.api.v1.deps import check_period, get_branch_id, get_today
from fiscal_tracker.api.v1.envelope import ok

logger = logging.getLogger("api.v1.dashboard")

router = APIRouter(tags=["Dashboard"])


@router.get("/dashboard", summary="Portfolio dashboard")
async def dashboard(
    branch_id: str | None = Depends(get_branch_id),
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db),
):
    """Late and near-term obligations, collaborator progress and sorted dossiers."""
    dossiers = await DossierRepository(db).list_active(branch_id)
    taches = await ObligationRepository(db).list_for_dossiers([d.id for d in dossiers])
    collaborators = await CollaboratorRepository(db).list_for_branch(branch_id)

    board = build_dashboard(
        dossiers,
        taches,
        collaborators,
        today,
        late_limit=settings.LATE_LIST_LIMIT,
        near_term_limit=settings.NEAR_TERM_LIST_LIMIT,
    )
    return ok(data=board.to_dict())


@router.get("/dashboard/matrix", summary="Dossier x month grid of one obligation type")
async def matrix(
    type: str = Query("TVA", description="Obligation type"),
    branch_id: str | None = Depends(get_branch_id),
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db),
):
    try:
        tache_type = TacheType(type)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid obligation type: {type}")

    dossiers = await DossierRepository(db).list_active(branch_id)
    taches = await ObligationRepository(db).list_for_dossiers([d.id for d in dossiers])
    months = rolling_months(today)
    in_window = [t for t in taches if t.type == tache_type and t.period in months]
    return ok(data={
        "type": tache_type.value,
        "months": months,
        "rows": obligation_matrix(dossiers, taches, months, tache_type),
        "totals": obligation_amount_totals(in_window).to_dict(),
    })


@router.get("/tva/board", summary="VAT status of every dossier for one period")
async def tva_board(
    period: str | None = Query(None, description="YYYY-MM, defaults to last month"),
    branch_id: str | None = Depends(get_branch_id),
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db),
):
    if period is None:
        period = previous_period(period_of(today))
    check_period(period)

    dossiers = await DossierRepository(db).list_active(branch_id)
    records = await TVAHistoryRepository(db).list_for_period(period, [d.id for d in dossiers])
    return ok(data={"period": period, "dossiers": period_board(dossiers, period, records)})
