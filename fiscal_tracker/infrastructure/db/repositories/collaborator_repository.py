from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fiscal_tracker.domain.models.fiscal import Collaborator
from fiscal_tracker.infrastructure.db.base import to_uuid
from fiscal_tracker.infrastructure.db.models import Profile


class CollaboratorRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_for_branch(self, branch_id: str | None = None) -> list[Collaborator]:
        stmt = select(Profile)
        if branch_id:
            stmt = stmt.where(Profile.branch_id == to_uuid(branch_id))
        stmt = stmt.order_by(Profile.full_name.asc())
        result = await self.db.execute(stmt)
        return [Collaborator.model_validate(p) for p in result.scalars().all()]
