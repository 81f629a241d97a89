# fiscal_tracker/domain/services/reporting.py
"""
Portfolio-level views over dossiers and their fiscal obligations.

Everything here is a pure function of snapshots plus one ``today``. Obligations
with status credit / neant take no part in urgency-based views, and undated
obligations are skipped (see urgency.classify).
"""

from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable

from fiscal_tracker.domain.models.fiscal import (
    Collaborator,
    Dossier,
    TacheFiscale,
    TacheStatut,
    TacheType,
    UrgencyLevel,
)
from fiscal_tracker.domain.services.calendar_rules import period_of
from fiscal_tracker.domain.services.urgency import (
    DASHBOARD_URGENT_DAYS,
    AnnotatedTache,
    annotate,
    classify,
    is_actionable,
)
from fiscal_tracker.domain.services.visibility import filter_visible

logger = logging.getLogger("reporting")

LATE_LIST_LIMIT = 10
NEAR_TERM_LIST_LIMIT = 6

# Completion ratio thresholds for collaborator progress
_PROGRESS_DONE_PCT = 80
_PROGRESS_WARNING_PCT = 50


class Severity(str, Enum):
    URGENT = "urgent"
    DONE = "done"
    WARNING = "warning"
    TODO = "todo"


@dataclass
class BoundedList:
    """The first ``limit`` items of a list plus how many were left out."""
    items: list[AnnotatedTache]
    total: int
    limit: int

    @property
    def remaining(self) -> int:
        return max(0, self.total - len(self.items))

    def to_dict(self) -> dict:
        return {
            "items": [a.to_dict() for a in self.items],
            "total": self.total,
            "limit": self.limit,
            "remaining": self.remaining,
        }


@dataclass
class CollaboratorStats:
    collaborator: Collaborator
    total: int
    done: int
    late: int

    @property
    def percentage(self) -> int:
        if self.total == 0:
            return 0
        return round(100 * self.done / self.total)

    @property
    def has_late(self) -> bool:
        return self.late > 0

    @property
    def severity(self) -> Severity:
        # Any late obligation outranks the completion ratio
        if self.late > 0:
            return Severity.URGENT
        if self.percentage >= _PROGRESS_DONE_PCT:
            return Severity.DONE
        if self.percentage >= _PROGRESS_WARNING_PCT:
            return Severity.WARNING
        return Severity.TODO

    def to_dict(self) -> dict:
        return {
            "collaborator_id": self.collaborator.id,
            "full_name": self.collaborator.full_name,
            "total": self.total,
            "done": self.done,
            "late": self.late,
            "percentage": self.percentage,
            "has_late": self.has_late,
            "severity": self.severity.value,
        }


@dataclass
class DossierTaskStats:
    total: int = 0
    pending: int = 0
    late: int = 0
    done: int = 0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "pending": self.pending,
            "late": self.late,
            "done": self.done,
        }


@dataclass
class AmountTotals:
    montant: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")

    @property
    def net(self) -> Decimal:
        return self.montant - self.credit

    def to_dict(self) -> dict:
        return {
            "montant": float(self.montant),
            "credit": float(self.credit),
            "net": float(self.net),
        }


@dataclass
class PortfolioStats:
    active_dossiers: int = 0
    month_total: int = 0
    month_done: int = 0
    month_pending: int = 0
    flagged_late: int = 0

    def to_dict(self) -> dict:
        return {
            "active_dossiers": self.active_dossiers,
            "month_total": self.month_total,
            "month_done": self.month_done,
            "month_pending": self.month_pending,
            "flagged_late": self.flagged_late,
        }


@dataclass
class Dashboard:
    today: date
    late: BoundedList
    near_term: BoundedList
    collaborators: list[CollaboratorStats] = field(default_factory=list)
    dossiers: list[tuple[Dossier, DossierTaskStats]] = field(default_factory=list)
    stats: PortfolioStats = field(default_factory=PortfolioStats)

    def to_dict(self) -> dict:
        return {
            "today": self.today.isoformat(),
            "late": self.late.to_dict(),
            "near_term": self.near_term.to_dict(),
            "collaborators": [c.to_dict() for c in self.collaborators],
            "dossiers": [
                {"id": d.id, "nom": d.nom, "code": d.code, "stats": s.to_dict()}
                for d, s in self.dossiers
            ],
            "stats": self.stats.to_dict(),
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _is_late(tache: TacheFiscale, today: date) -> bool:
    if not is_actionable(tache):
        return False
    return classify(tache, today) == UrgencyLevel.LATE


def _due_this_month(tache: TacheFiscale, month: str) -> bool:
    return tache.date_echeance is not None and period_of(tache.date_echeance) == month


def _group_by_dossier(taches: Iterable[TacheFiscale]) -> dict[str, list[TacheFiscale]]:
    grouped: dict[str, list[TacheFiscale]] = {}
    for tache in taches:
        grouped.setdefault(tache.dossier_id, []).append(tache)
    return grouped


def name_sort_key(name: str) -> str:
    """Accent- and case-insensitive key, so "Éclair" sorts next to "Eclair"."""
    decomposed = unicodedata.normalize("NFKD", name or "")
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.casefold()


def _bounded(annotated: list[AnnotatedTache], limit: int) -> BoundedList:
    annotated.sort(key=lambda a: a.tache.date_echeance)
    return BoundedList(items=annotated[:limit], total=len(annotated), limit=limit)


# ---------------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------------

def late_obligations(
    taches: Iterable[TacheFiscale],
    today: date,
    limit: int = LATE_LIST_LIMIT,
) -> BoundedList:
    """Late obligations, oldest deadline first."""
    late = [
        a for a in annotate((t for t in taches if is_actionable(t)), today)
        if a.urgency == UrgencyLevel.LATE
    ]
    return _bounded(late, limit)


def near_term_obligations(
    taches: Iterable[TacheFiscale],
    today: date,
    limit: int = NEAR_TERM_LIST_LIMIT,
) -> BoundedList:
    """Obligations due within the dashboard window, nearest deadline first."""
    urgent = [
        a for a in annotate((t for t in taches if is_actionable(t)), today, DASHBOARD_URGENT_DAYS)
        if a.urgency == UrgencyLevel.URGENT
    ]
    return _bounded(urgent, limit)


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

def collaborator_progress(
    collaborators: Iterable[Collaborator],
    dossiers: Iterable[Dossier],
    taches: Iterable[TacheFiscale],
    today: date,
) -> list[CollaboratorStats]:
    """Completion of this month's obligations per collaborator, best first.

    Only dossiers a collaborator manages count; collaborators with nothing due
    this month are left out.
    """
    month = period_of(today)
    dossiers_by_manager: dict[str, set[str]] = {}
    for dossier in dossiers:
        if dossier.manager_id:
            dossiers_by_manager.setdefault(dossier.manager_id, set()).add(dossier.id)

    this_month = [t for t in taches if _due_this_month(t, month)]

    stats = []
    for collaborator in collaborators:
        managed = dossiers_by_manager.get(collaborator.id, set())
        relevant = [t for t in this_month if t.dossier_id in managed]
        if not relevant:
            continue
        stats.append(CollaboratorStats(
            collaborator=collaborator,
            total=len(relevant),
            done=sum(1 for t in relevant if t.statut == TacheStatut.FAIT),
            late=sum(1 for t in relevant if _is_late(t, today)),
        ))

    stats.sort(key=lambda s: s.percentage, reverse=True)
    return stats


# ---------------------------------------------------------------------------
# Dossiers
# ---------------------------------------------------------------------------

def dossier_task_stats(taches: Iterable[TacheFiscale], today: date) -> DossierTaskStats:
    stats = DossierTaskStats()
    for tache in taches:
        stats.total += 1
        if tache.statut in (TacheStatut.A_FAIRE, TacheStatut.RETARD):
            stats.pending += 1
        if tache.statut == TacheStatut.FAIT:
            stats.done += 1
        if _is_late(tache, today):
            stats.late += 1
    return stats


def pending_tasks(taches: Iterable[TacheFiscale], today: date) -> list[AnnotatedTache]:
    """A dossier's open obligations, nearest deadline first."""
    open_ = annotate((t for t in taches if is_actionable(t)), today)
    open_.sort(key=lambda a: a.tache.date_echeance)
    return open_


def sort_portfolio(
    dossiers: Iterable[Dossier],
    taches: Iterable[TacheFiscale],
    today: date,
) -> list[tuple[Dossier, DossierTaskStats]]:
    """Dossiers with a late obligation first, then by name."""
    by_dossier = _group_by_dossier(taches)
    rows = [
        (d, dossier_task_stats(by_dossier.get(d.id, []), today))
        for d in dossiers
    ]
    rows.sort(key=lambda row: (row[1].late == 0, name_sort_key(row[0].nom)))
    return rows


def portfolio_stats(
    dossiers: Iterable[Dossier],
    taches: Iterable[TacheFiscale],
    today: date,
) -> PortfolioStats:
    month = period_of(today)
    taches = list(taches)
    this_month = [t for t in taches if _due_this_month(t, month)]
    return PortfolioStats(
        active_dossiers=sum(1 for d in dossiers if d.is_active),
        month_total=len(this_month),
        month_done=sum(1 for t in this_month if t.statut == TacheStatut.FAIT),
        month_pending=sum(1 for t in this_month if t.statut == TacheStatut.A_FAIRE),
        flagged_late=sum(1 for t in taches if t.statut == TacheStatut.RETARD),
    )


def obligation_matrix(
    dossiers: Iterable[Dossier],
    taches: Iterable[TacheFiscale],
    months: list[str],
    tache_type: TacheType,
) -> list[dict]:
    """Dossier × month grid of one obligation type; empty cells are None."""
    cells: dict[tuple[str, str], TacheFiscale] = {}
    for tache in taches:
        if tache.type != tache_type or tache.period is None:
            continue
        key = (tache.dossier_id, tache.period)
        if key in cells:
            logger.warning(
                "Dossier %s has several %s obligations due %s, showing %s",
                tache.dossier_id, tache_type.value, tache.period, tache.id,
            )
        cells[key] = tache

    grid = []
    for dossier in dossiers:
        row = {}
        for month in months:
            tache = cells.get((dossier.id, month))
            row[month] = (
                {
                    "id": tache.id,
                    "statut": tache.statut.value,
                    "montant": float(tache.montant) if tache.montant is not None else None,
                }
                if tache else None
            )
        grid.append({"dossier_id": dossier.id, "nom": dossier.nom, "cells": row})
    return grid


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

def obligation_amount_totals(taches: Iterable[TacheFiscale]) -> AmountTotals:
    """Signed obligation amounts split into payable and credit (negative)."""
    totals = AmountTotals()
    for tache in taches:
        if tache.montant is None:
            continue
        if tache.montant < 0:
            totals.credit += -tache.montant
        else:
            totals.montant += tache.montant
    return totals


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

def build_dashboard(
    dossiers: Iterable[Dossier],
    taches: Iterable[TacheFiscale],
    collaborators: Iterable[Collaborator],
    today: date,
    *,
    late_limit: int = LATE_LIST_LIMIT,
    near_term_limit: int = NEAR_TERM_LIST_LIMIT,
) -> Dashboard:
    """Every portfolio view, computed against the same ``today``."""
    dossiers = list(dossiers)
    visible = filter_visible(taches, today)
    dossier_ids = {d.id for d in dossiers}
    visible = [t for t in visible if t.dossier_id in dossier_ids]

    dashboard = Dashboard(
        today=today,
        late=late_obligations(visible, today, late_limit),
        near_term=near_term_obligations(visible, today, near_term_limit),
        collaborators=collaborator_progress(collaborators, dossiers, visible, today),
        dossiers=sort_portfolio(dossiers, visible, today),
        stats=portfolio_stats(dossiers, visible, today),
    )
    logger.info(
        "Dashboard for %s: %d dossiers, %d late, %d near-term",
        today, len(dossiers), dashboard.late.total, dashboard.near_term.total,
    )
    return dashboard
