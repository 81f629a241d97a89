# fiscal_tracker/infrastructure/db/repositories/tva_history_repository.py
"""Repository for the VAT workflow rows (tva_history), keyed by (dossier, period)."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from fiscal_tracker.core.clock import utcnow
from fiscal_tracker.domain.models.fiscal import TVAHistory
from fiscal_tracker.domain.services.calendar_rules import parse_period
from fiscal_tracker.domain.services.tva_workflow import (
    TVAStep,
    details_changes,
    toggle_step_changes,
)
from fiscal_tracker.infrastructure.db.base import to_uuid
from fiscal_tracker.infrastructure.db.models import TVAHistory as TVAHistoryRow

logger = logging.getLogger("tva_history_repository")

_NATURAL_KEY = "uq_tva_history_dossier_period"


class TVAHistoryRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, dossier_id: str, period: str) -> TVAHistory | None:
        stmt = select(TVAHistoryRow).where(
            and_(
                TVAHistoryRow.dossier_id == to_uuid(dossier_id),
                TVAHistoryRow.period == period,
            )
        )
        result = await self.db.execute(stmt)
        row = result.scalar_one_or_none()
        return TVAHistory.model_validate(row) if row else None

    async def upsert(self, dossier_id: str, period: str, changes: dict[str, Any]) -> TVAHistory:
        """Insert or update the (dossier, period) row with ``changes``."""
        parse_period(period)
        set_ = dict(changes)
        if set_.get("completed_by") is not None:
            set_["completed_by"] = to_uuid(set_["completed_by"])

        stmt = (
            pg_insert(TVAHistoryRow)
            .values(dossier_id=to_uuid(dossier_id), period=period, **set_)
            .on_conflict_do_update(
                constraint=_NATURAL_KEY,
                set_={**set_, "updated_at": func.now()},
            )
            .returning(TVAHistoryRow)
        )
        result = await self.db.execute(stmt, execution_options={"populate_existing": True})
        row = result.scalar_one()
        await self.db.commit()
        return TVAHistory.model_validate(row)

    async def toggle_step(
        self,
        dossier_id: str,
        period: str,
        step: str | TVAStep,
        value: bool,
        actor: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> TVAHistory:
        existing = await self.get(dossier_id, period)
        row = toggle_step_changes(existing, step, value, actor=actor, now=now or utcnow())
        record = await self.upsert(dossier_id, period, row)
        logger.info("TVA %s of dossier %s: %s set to %s", period, dossier_id, step, value)
        return record

    async def update_details(
        self,
        dossier_id: str,
        period: str,
        montant: Optional[Decimal] = None,
        credit: Optional[Decimal] = None,
        note: Optional[str] = None,
    ) -> TVAHistory:
        existing = await self.get(dossier_id, period)
        row = details_changes(existing, montant=montant, credit=credit, note=note)
        return await self.upsert(dossier_id, period, row)

    async def list_for_year(self, dossier_id: str, year: int) -> list[TVAHistory]:
        stmt = (
            select(TVAHistoryRow)
            .where(
                and_(
                    TVAHistoryRow.dossier_id == to_uuid(dossier_id),
                    TVAHistoryRow.period >= f"{year:04d}-01",
                    TVAHistoryRow.period <= f"{year:04d}-12",
                )
            )
            .order_by(TVAHistoryRow.period.asc())
        )
        result = await self.db.execute(stmt)
        return [TVAHistory.model_validate(r) for r in result.scalars().all()]

    async def list_for_period(
        self,
        period: str,
        dossier_ids: Optional[Iterable[str]] = None,
    ) -> list[TVAHistory]:
        """Rows of one period across the portfolio, or across ``dossier_ids``."""
        stmt = select(TVAHistoryRow).where(TVAHistoryRow.period == period)
        if dossier_ids is not None:
            stmt = stmt.where(TVAHistoryRow.dossier_id.in_([to_uuid(d) for d in dossier_ids]))
        result = await self.db.execute(stmt)
        return [TVAHistory.model_validate(r) for r in result.scalars().all()]
