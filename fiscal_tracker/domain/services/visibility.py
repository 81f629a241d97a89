# fiscal_tracker/domain/services/visibility.py
"""
Visibility window for fiscal obligations.

An obligation is surfaced to users only once it can be worked on:
  - TVA: from the 1st of the month the return is due, i.e. as soon as the
    reported month is over (the due-day itself does not matter)
  - every other type: from 30 days before the deadline
Finished obligations (fait / credit / neant) stay visible so past years can
be inspected.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable

from fiscal_tracker.domain.models.fiscal import TacheFiscale, TacheStatut, TacheType

logger = logging.getLogger("visibility")

VISIBILITY_LEAD_DAYS = 30

ALWAYS_VISIBLE_STATUSES = {TacheStatut.FAIT, TacheStatut.CREDIT, TacheStatut.NEANT}


def visible_from(tache: TacheFiscale) -> date | None:
    """First day on which the obligation is shown, None if it has no due date."""
    due = tache.date_echeance
    if due is None:
        return None
    if tache.type == TacheType.TVA:
        return due.replace(day=1)
    return due - timedelta(days=VISIBILITY_LEAD_DAYS)


def is_visible(tache: TacheFiscale, today: date) -> bool:
    if tache.statut in ALWAYS_VISIBLE_STATUSES:
        return True

    start = visible_from(tache)
    if start is None:
        logger.warning(
            "Obligation %s (%s, dossier %s) has no usable due date, hidden",
            tache.id, tache.type.value, tache.dossier_id,
        )
        return False
    return today >= start


def filter_visible(taches: Iterable[TacheFiscale], today: date) -> list[TacheFiscale]:
    """Keep only the obligations visible on ``today``, preserving order."""
    return [t for t in taches if is_visible(t, today)]
