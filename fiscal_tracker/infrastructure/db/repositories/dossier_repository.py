# fiscal_tracker/infrastructure/db/repositories/dossier_repository.py
"""Read access to dossiers."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fiscal_tracker.domain.models.fiscal import Dossier
from fiscal_tracker.infrastructure.db.base import to_uuid
from fiscal_tracker.infrastructure.db.models import Dossier as DossierRow

logger = logging.getLogger("dossier_repository")


class DossierRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, dossier_id: str) -> Dossier | None:
        try:
            key = to_uuid(dossier_id)
        except ValueError:
            logger.debug("Malformed dossier id %r", dossier_id)
            return None
        stmt = select(DossierRow).where(DossierRow.id == key)
        result = await self.db.execute(stmt)
        row = result.scalar_one_or_none()
        return Dossier.model_validate(row) if row else None

    async def list_active(self, branch_id: str | None = None) -> list[Dossier]:
        """Active dossiers, optionally narrowed to one branch, ordered by name."""
        stmt = select(DossierRow).where(DossierRow.is_active.is_(True))
        if branch_id:
            stmt = stmt.where(DossierRow.branch_id == to_uuid(branch_id))
        stmt = stmt.order_by(DossierRow.nom.asc())
        result = await self.db.execute(stmt)
        return [Dossier.model_validate(r) for r in result.scalars().all()]
