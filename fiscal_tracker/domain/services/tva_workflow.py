# fiscal_tracker/domain/services/tva_workflow.py
"""
VAT (TVA) completion workflow.

Each (dossier, period) carries six bookkeeping flags:

  1. compta reçue      documents received
  2. saisie faite      entries posted
  3. dossier révisé    file reviewed
  4. calcul envoyé     computation sent to the client
  5. télétransmis      return filed electronically
  6. validé            validated

The flags are independent: any subset may be set, in any order. The coarse
status is derived from them:

  na        the dossier does not file VAT for this period
  done      "validé" is set, whatever the other five say
  progress  at least one of the first five is set
  todo      nothing set, or no row yet

Validating stamps completed_at / completed_by; un-validating clears both.
Amount, credit and note are edited separately and merged into the same row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Optional

from fiscal_tracker.domain.errors import UnknownStepError
from fiscal_tracker.domain.models.fiscal import Dossier, TVAHistory, TVAStatus
from fiscal_tracker.domain.services.calendar_rules import (
    REGIME_LABELS,
    is_tva_active_for_period,
    tva_regime,
    year_periods,
)

logger = logging.getLogger("tva_workflow")


class TVAStep(str, Enum):
    COMPTA_RECUE = "step_compta_recue"
    SAISIE_FAITE = "step_saisie_faite"
    DOSSIER_REVISE = "step_dossier_revise"
    CALCUL_ENVOYE = "step_calcul_envoye"
    TELETRANSMIS = "step_teletransmis"
    VALIDE = "step_valide"


# Ordered as presented to users
TVA_STEPS: list[tuple[TVAStep, str]] = [
    (TVAStep.COMPTA_RECUE, "Compta reçue"),
    (TVAStep.SAISIE_FAITE, "Saisie faite"),
    (TVAStep.DOSSIER_REVISE, "Dossier révisé"),
    (TVAStep.CALCUL_ENVOYE, "Calcul envoyé"),
    (TVAStep.TELETRANSMIS, "Télétransmis"),
    (TVAStep.VALIDE, "Validé"),
]

_PRE_VALIDATION_STEPS = [step for step, _ in TVA_STEPS if step != TVAStep.VALIDE]

# Columns a merged upsert row carries
_ROW_FIELDS = (
    "montant",
    "credit",
    "note",
    "completed_at",
    "completed_by",
    *(step.value for step, _ in TVA_STEPS),
)


def parse_step(name: str | TVAStep) -> TVAStep:
    if isinstance(name, TVAStep):
        return name
    try:
        return TVAStep(name)
    except ValueError:
        raise UnknownStepError(
            f"Unknown TVA step '{name}'. Allowed: {[s.value for s, _ in TVA_STEPS]}"
        )


# ---------------------------------------------------------------------------
# Status derivation
# ---------------------------------------------------------------------------

def derive_status(record: Optional[TVAHistory], is_active: bool) -> TVAStatus:
    if not is_active:
        return TVAStatus.NA
    if record is None:
        return TVAStatus.TODO
    if record.step_valide:
        return TVAStatus.DONE
    if any(getattr(record, step.value) for step in _PRE_VALIDATION_STEPS):
        return TVAStatus.PROGRESS
    return TVAStatus.TODO


def period_status(dossier: Dossier, period: str, record: Optional[TVAHistory]) -> TVAStatus:
    """Status of the dossier's VAT for ``period``, honouring its filing regime."""
    active = is_tva_active_for_period(tva_regime(dossier), period)
    return derive_status(record, active)


def count_completed_steps(record: Optional[TVAHistory]) -> int:
    if record is None:
        return 0
    return sum(1 for step, _ in TVA_STEPS if getattr(record, step.value))


def next_step(record: Optional[TVAHistory]) -> Optional[TVAStep]:
    """First step not yet set, in presentation order; None once all six are."""
    if record is None:
        return TVA_STEPS[0][0]
    for step, _ in TVA_STEPS:
        if not getattr(record, step.value):
            return step
    return None


# ---------------------------------------------------------------------------
# Write-side merges
# ---------------------------------------------------------------------------

def _base_row(existing: Optional[TVAHistory]) -> dict[str, Any]:
    if existing is None:
        return {
            "montant": Decimal("0"),
            "credit": Decimal("0"),
            "note": None,
            "completed_at": None,
            "completed_by": None,
            **{step.value: False for step, _ in TVA_STEPS},
        }
    return existing.model_dump(include=set(_ROW_FIELDS))


def toggle_step_changes(
    existing: Optional[TVAHistory],
    step: str | TVAStep,
    value: bool,
    *,
    actor: Optional[str],
    now: datetime,
) -> dict[str, Any]:
    """Row to upsert after setting ``step`` to ``value``.

    Only the validation step has a side effect: completion metadata is stamped
    when it is set and cleared when it is unset.
    """
    step = parse_step(step)
    row = _base_row(existing)
    row[step.value] = bool(value)

    if step == TVAStep.VALIDE:
        if value:
            row["completed_at"] = now
            row["completed_by"] = actor
        else:
            row["completed_at"] = None
            row["completed_by"] = None
    return row


def details_changes(
    existing: Optional[TVAHistory],
    *,
    montant: Optional[Decimal] = None,
    credit: Optional[Decimal] = None,
    note: Optional[str] = None,
) -> dict[str, Any]:
    """Row to upsert after editing amount / credit / note; steps are kept."""
    row = _base_row(existing)
    if montant is not None:
        row["montant"] = Decimal(str(montant))
    if credit is not None:
        row["credit"] = Decimal(str(credit))
    if note is not None:
        row["note"] = note
    return row


# ---------------------------------------------------------------------------
# Year / period views
# ---------------------------------------------------------------------------

@dataclass
class TVAPeriodRow:
    period: str
    is_active: bool
    status: TVAStatus
    completed_steps: int
    record: Optional[TVAHistory] = None

    def to_dict(self) -> dict:
        r = self.record
        return {
            "period": self.period,
            "is_active": self.is_active,
            "status": self.status.value,
            "completed_steps": self.completed_steps,
            "steps": {step.value: bool(r and getattr(r, step.value)) for step, _ in TVA_STEPS},
            "montant": float(r.montant) if r else 0.0,
            "credit": float(r.credit) if r else 0.0,
            "note": r.note if r else None,
            "completed_at": r.completed_at.isoformat() if r and r.completed_at else None,
            "completed_by": r.completed_by if r else None,
        }


@dataclass
class TVAYearTotals:
    montant: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    done: int = 0
    in_progress: int = 0
    todo: int = 0
    total: int = 0

    @property
    def net(self) -> Decimal:
        return self.montant - self.credit

    def to_dict(self) -> dict:
        return {
            "montant": float(self.montant),
            "credit": float(self.credit),
            "net": float(self.net),
            "done": self.done,
            "in_progress": self.in_progress,
            "todo": self.todo,
            "total": self.total,
        }


def _index_by_period(records: Iterable[TVAHistory]) -> dict[str, TVAHistory]:
    return {r.period: r for r in records}


def year_matrix(dossier: Dossier, year: int, records: Iterable[TVAHistory]) -> list[TVAPeriodRow]:
    """Twelve rows, one per month of ``year``, with each month's status."""
    by_period = _index_by_period(records)
    regime = tva_regime(dossier)
    rows = []
    for period in year_periods(year):
        record = by_period.get(period)
        active = is_tva_active_for_period(regime, period)
        rows.append(TVAPeriodRow(
            period=period,
            is_active=active,
            status=derive_status(record, active),
            completed_steps=count_completed_steps(record),
            record=record,
        ))
    return rows


def year_totals(dossier: Dossier, year: int, records: Iterable[TVAHistory]) -> TVAYearTotals:
    """Amounts and status counts over the dossier's active periods of ``year``."""
    totals = TVAYearTotals()
    for row in year_matrix(dossier, year, records):
        if not row.is_active:
            continue
        totals.total += 1
        if row.record is not None:
            totals.montant += row.record.montant
            totals.credit += row.record.credit
        if row.status == TVAStatus.DONE:
            totals.done += 1
        elif row.status == TVAStatus.PROGRESS:
            totals.in_progress += 1
        else:
            totals.todo += 1
    return totals


def period_board(
    dossiers: Iterable[Dossier],
    period: str,
    records: Iterable[TVAHistory],
) -> list[dict]:
    """One line per dossier for a single period, across the portfolio."""
    by_dossier = {r.dossier_id: r for r in records if r.period == period}
    lines = []
    for dossier in dossiers:
        record = by_dossier.get(dossier.id)
        regime = tva_regime(dossier)
        active = is_tva_active_for_period(regime, period)
        lines.append({
            "dossier_id": dossier.id,
            "code": dossier.code,
            "nom": dossier.nom,
            "regime": regime,
            "regime_label": REGIME_LABELS[regime],
            "tva_deadline_day": dossier.tva_deadline_day,
            "is_active": active,
            "status": derive_status(record, active).value,
            "completed_steps": count_completed_steps(record),
        })
    return lines
