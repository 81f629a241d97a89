# fiscal_tracker/domain/services/urgency.py
"""
Urgency classification of fiscal obligations.

    done    statut is "fait", whatever the date
    late    deadline passed
    urgent  deadline within the next N days, today included
    soon    anything further away

N depends on where the obligation is shown: the portfolio dashboard uses a
5-day window, the single-dossier view a 7-day one. Both windows are
inclusive at both ends. Urgency is recomputed on every read and never stored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable, Optional

from fiscal_tracker.domain.models.fiscal import TacheFiscale, TacheStatut, UrgencyLevel

logger = logging.getLogger("urgency")

# Portfolio / dashboard views
DASHBOARD_URGENT_DAYS = 5
# Single-dossier detail views
DETAIL_URGENT_DAYS = 7

NON_ACTIONABLE_STATUSES = {TacheStatut.FAIT, TacheStatut.CREDIT, TacheStatut.NEANT}


class Tone(str, Enum):
    """Per-obligation colouring used by the detail grid."""
    DONE = "done"
    CREDIT = "credit"
    NEUTRAL = "neutral"
    LATE = "late"
    URGENT = "urgent"
    NORMAL = "normal"


@dataclass
class AnnotatedTache:
    tache: TacheFiscale
    urgency: UrgencyLevel
    days_until_due: Optional[int]

    def to_dict(self) -> dict:
        t = self.tache
        return {
            "id": t.id,
            "dossier_id": t.dossier_id,
            "type": t.type.value,
            "installment": t.installment.value if t.installment else None,
            "date_echeance": t.date_echeance.isoformat() if t.date_echeance else None,
            "period": t.period,
            "statut": t.statut.value,
            "montant": float(t.montant) if t.montant is not None else None,
            "commentaire": t.commentaire,
            "completed_at": t.completed_at.isoformat() if t.completed_at else None,
            "completed_by": t.completed_by,
            "urgency": self.urgency.value,
            "days_until_due": self.days_until_due,
        }


def is_actionable(tache: TacheFiscale) -> bool:
    """False for obligations that need no further work (fait, credit, neant)."""
    return tache.statut not in NON_ACTIONABLE_STATUSES


def days_until_due(tache: TacheFiscale, today: date) -> Optional[int]:
    if tache.date_echeance is None:
        return None
    return (tache.date_echeance - today).days


def classify(
    tache: TacheFiscale,
    today: date,
    threshold: int = DASHBOARD_URGENT_DAYS,
) -> Optional[UrgencyLevel]:
    """Urgency of ``tache`` on ``today``; None when it has no usable due date."""
    if tache.statut == TacheStatut.FAIT:
        return UrgencyLevel.DONE

    days = days_until_due(tache, today)
    if days is None:
        logger.warning(
            "Obligation %s (%s, dossier %s) has no usable due date, not classified",
            tache.id, tache.type.value, tache.dossier_id,
        )
        return None
    if days < 0:
        return UrgencyLevel.LATE
    if days <= threshold:
        return UrgencyLevel.URGENT
    return UrgencyLevel.SOON


def status_tone(
    tache: TacheFiscale,
    today: date,
    threshold: int = DETAIL_URGENT_DAYS,
) -> Tone:
    if tache.statut == TacheStatut.FAIT:
        return Tone.DONE
    if tache.statut == TacheStatut.CREDIT:
        return Tone.CREDIT
    if tache.statut == TacheStatut.NEANT:
        return Tone.NEUTRAL

    urgency = classify(tache, today, threshold)
    if urgency == UrgencyLevel.LATE:
        return Tone.LATE
    if urgency == UrgencyLevel.URGENT:
        return Tone.URGENT
    return Tone.NORMAL


def annotate(
    taches: Iterable[TacheFiscale],
    today: date,
    threshold: int = DASHBOARD_URGENT_DAYS,
) -> list[AnnotatedTache]:
    """Attach urgency to each obligation, dropping the unclassifiable ones."""
    annotated = []
    for tache in taches:
        urgency = classify(tache, today, threshold)
        if urgency is None:
            continue
        annotated.append(AnnotatedTache(
            tache=tache,
            urgency=urgency,
            days_until_due=days_until_due(tache, today),
        ))
    return annotated
