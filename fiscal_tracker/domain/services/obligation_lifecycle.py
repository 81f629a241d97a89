# fiscal_tracker/domain/services/obligation_lifecycle.py
"""
Write-side rules for fiscal obligations ("tâches fiscales").

Obligations are keyed by (dossier, type, period) where period is the due
date's month. Writes are merges onto the existing row: fields absent from the
change set keep their stored value. Completion metadata follows the status:
stamped when an obligation becomes "fait", cleared when it leaves "fait".
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Optional

from fiscal_tracker.domain.models.fiscal import (
    Dossier,
    TacheFiscale,
    TacheStatut,
    TacheType,
)
from fiscal_tracker.domain.services.calendar_rules import (
    IS_INSTALLMENT_LABELS,
    build_year_schedule,
    due_date,
    previous_period,
)

logger = logging.getLogger("obligation_lifecycle")

EDITABLE_FIELDS = ("statut", "montant", "commentaire", "installment", "date_echeance")
# Never cleared: a None change leaves the stored value
REQUIRED_FIELDS = ("statut", "date_echeance")


def apply_obligation_changes(
    existing: Optional[TacheFiscale],
    changes: dict[str, Any],
    *,
    actor: Optional[str],
    now: datetime,
) -> dict[str, Any]:
    """Merge ``changes`` into ``existing`` and return the row to upsert."""
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        logger.warning("Ignoring non-editable obligation fields: %s", sorted(unknown))

    row: dict[str, Any] = {
        "statut": TacheStatut.A_FAIRE,
        "montant": None,
        "commentaire": None,
        "installment": None,
        "date_echeance": None,
        "completed_at": None,
        "completed_by": None,
    }
    if existing is not None:
        row.update(existing.model_dump(include=set(row)))

    previous_statut = row["statut"]
    for field in EDITABLE_FIELDS:
        if field not in changes:
            continue
        if changes[field] is None and field in REQUIRED_FIELDS:
            continue
        row[field] = changes[field]

    statut = TacheStatut(row["statut"])
    row["statut"] = statut
    if statut == TacheStatut.FAIT and previous_statut != TacheStatut.FAIT:
        row["completed_at"] = now
        row["completed_by"] = actor
    elif statut != TacheStatut.FAIT:
        row["completed_at"] = None
        row["completed_by"] = None
    return row


def onboarding_rows(dossier: Dossier, year: int) -> list[dict[str, Any]]:
    """Initial obligations of a dossier for ``year``, one per calendar slot."""
    rows = []
    for slot in build_year_schedule(dossier, year):
        rows.append({
            "type": slot.type,
            "period": slot.period,
            "date_echeance": slot.due_date,
            "installment": slot.installment,
            "commentaire": IS_INSTALLMENT_LABELS.get(slot.installment) if slot.installment else None,
        })
    return rows


def default_due_date(dossier: Dossier, tache_type: TacheType, period: str) -> Optional[date]:
    """Calendar deadline for an obligation keyed by its due month ``period``.

    TVA rows are keyed by the month they fall due, so the declared month is
    the one before. None when the calendar has no slot there.
    """
    if tache_type == TacheType.TVA:
        return due_date(dossier, tache_type, previous_period(period))
    return due_date(dossier, tache_type, period)
