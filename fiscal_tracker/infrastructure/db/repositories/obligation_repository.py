# fiscal_tracker/infrastructure/db/repositories/obligation_repository.py
"""Repository for fiscal obligations (taches_fiscales).

Rows are keyed by (dossier_id, type, period). Writes read the current row,
merge the change set onto it with the lifecycle rules, then upsert with
``INSERT ... ON CONFLICT DO UPDATE``. Concurrent writers: last write wins.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Iterable, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from fiscal_tracker.core.clock import utcnow
from fiscal_tracker.domain.models.fiscal import Dossier, TacheFiscale, TacheType
from fiscal_tracker.domain.services.calendar_rules import period_of
from fiscal_tracker.domain.services.obligation_lifecycle import (
    apply_obligation_changes,
    onboarding_rows,
)
from fiscal_tracker.infrastructure.db.base import to_uuid
from fiscal_tracker.infrastructure.db.models import TacheFiscale as TacheRow

logger = logging.getLogger("obligation_repository")

_NATURAL_KEY = "uq_taches_dossier_type_period"


def _to_columns(row: dict[str, Any]) -> dict[str, Any]:
    """Domain values -> column values (enums to strings, ids to UUID)."""
    out = dict(row)
    for field in ("statut", "installment", "type"):
        value = out.get(field)
        if value is not None and hasattr(value, "value"):
            out[field] = value.value
    if out.get("completed_by") is not None:
        out["completed_by"] = to_uuid(out["completed_by"])
    return out


class ObligationRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, dossier_id: str, tache_type: TacheType, period: str) -> TacheFiscale | None:
        stmt = select(TacheRow).where(
            and_(
                TacheRow.dossier_id == to_uuid(dossier_id),
                TacheRow.type == tache_type.value,
                TacheRow.period == period,
            )
        )
        result = await self.db.execute(stmt)
        row = result.scalar_one_or_none()
        return TacheFiscale.model_validate(row) if row else None

    async def list_for_dossier_year(self, dossier_id: str, year: int) -> list[TacheFiscale]:
        """Obligations of one dossier falling due during ``year``, by due date."""
        stmt = (
            select(TacheRow)
            .where(
                and_(
                    TacheRow.dossier_id == to_uuid(dossier_id),
                    TacheRow.date_echeance >= date(year, 1, 1),
                    TacheRow.date_echeance <= date(year, 12, 31),
                )
            )
            .order_by(TacheRow.date_echeance.asc())
        )
        result = await self.db.execute(stmt)
        return [TacheFiscale.model_validate(r) for r in result.scalars().all()]

    async def list_for_dossiers(self, dossier_ids: Iterable[str]) -> list[TacheFiscale]:
        keys = [to_uuid(d) for d in dossier_ids]
        if not keys:
            return []
        stmt = (
            select(TacheRow)
            .where(TacheRow.dossier_id.in_(keys))
            .order_by(TacheRow.date_echeance.asc())
        )
        result = await self.db.execute(stmt)
        return [TacheFiscale.model_validate(r) for r in result.scalars().all()]

    async def upsert_obligation(
        self,
        dossier_id: str,
        tache_type: TacheType,
        period: str,
        changes: dict[str, Any],
        actor: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> TacheFiscale:
        """Create or update the obligation at (dossier, type, period).

        Fields absent from ``changes`` keep their stored value. A new row
        needs a ``date_echeance``, and the due date must fall in ``period``;
        ValueError otherwise.
        """
        existing = await self.get(dossier_id, tache_type, period)
        merged = apply_obligation_changes(existing, changes, actor=actor, now=now or utcnow())
        due = merged["date_echeance"]
        if due is None:
            raise ValueError(
                f"Obligation {tache_type.value} {period} of dossier {dossier_id} has no due date"
            )
        if period_of(due) != period:
            raise ValueError(
                f"Obligation {tache_type.value} {period} of dossier {dossier_id} "
                f"cannot fall due on {due.isoformat()}"
            )

        set_ = _to_columns(merged)
        values = {
            "dossier_id": to_uuid(dossier_id),
            "type": tache_type.value,
            "period": period,
            **set_,
        }
        stmt = (
            pg_insert(TacheRow)
            .values(**values)
            .on_conflict_do_update(
                constraint=_NATURAL_KEY,
                set_={**set_, "updated_at": func.now()},
            )
            .returning(TacheRow)
        )
        result = await self.db.execute(stmt, execution_options={"populate_existing": True})
        row = result.scalar_one()
        await self.db.commit()
        logger.info(
            "Obligation %s %s of dossier %s upserted (statut=%s)",
            tache_type.value, period, dossier_id, set_["statut"],
        )
        return TacheFiscale.model_validate(row)

    async def insert_schedule(self, dossier: Dossier, year: int) -> int:
        """Create the year's calendar obligations for ``dossier``.

        Slots that already have a row are left untouched, so re-running an
        onboarding never resets a status. Returns the number of rows created.
        """
        rows = onboarding_rows(dossier, year)
        if not rows:
            return 0
        key = to_uuid(dossier.id)
        stmt = (
            pg_insert(TacheRow)
            .values([{"dossier_id": key, **_to_columns(r)} for r in rows])
            .on_conflict_do_nothing(constraint=_NATURAL_KEY)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        created = result.rowcount or 0
        logger.info(
            "Dossier %s onboarded for %d: %d/%d obligations created",
            dossier.id, year, created, len(rows),
        )
        return created
