# fiscal_tracker/api/v1/schemas/obligations.py
"""Request bodies for obligation writes."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from fiscal_tracker.domain.models.fiscal import ISInstallment, TacheStatut
from fiscal_tracker.domain.services.obligation_lifecycle import REQUIRED_FIELDS


class ObligationUpsertRequest(BaseModel):
    """Only the fields that are sent are changed.

    An explicit null clears montant, commentaire or installment. statut and
    date_echeance cannot be cleared, so a null there leaves them unchanged.
    """
    statut: TacheStatut | None = None
    montant: Decimal | None = Field(default=None, description="Signed amount, negative for a credit")
    commentaire: str | None = None
    installment: ISInstallment | None = None
    date_echeance: date | None = None
    actor_id: str | None = Field(default=None, description="Profile recorded as completed_by")

    def changes(self) -> dict:
        changes = self.model_dump(exclude_unset=True, exclude={"actor_id"})
        for field in REQUIRED_FIELDS:
            if field in changes and changes[field] is None:
                del changes[field]
        return changes
