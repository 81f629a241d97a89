# fiscal_tracker/domain/services/calendar_rules.py
"""
French statutory tax calendar.

Maps (dossier regime, obligation type, period) to applicability and due date:
  - TVA: monthly, quarterly (Jan/Apr/Jul/Oct), annual (May) or exempt;
    due on the dossier's configured day of the month after the period
  - IS: four advance payments (15 Mar/Jun/Sep/Dec) and the balance (15 May)
  - CFE / CVAE / LIASSE: one annual deadline each

Periods are ``YYYY-MM`` strings throughout.
"""

from __future__ import annotations

import logging
from calendar import monthrange
from dataclasses import dataclass
from datetime import date
from typing import Optional

from fiscal_tracker.domain.errors import InvalidPeriodError
from fiscal_tracker.domain.models.fiscal import (
    Dossier,
    ISInstallment,
    RegimeFiscal,
    TacheType,
    TvaMode,
)

logger = logging.getLogger("calendar_rules")

# Simplified VAT regimes: Mensuel, Trimestriel, Annuel, Non-assujetti
REGIME_MENSUEL = "M"
REGIME_TRIMESTRIEL = "T"
REGIME_ANNUEL = "A"
REGIME_NON_ASSUJETTI = "N"

_TVA_MODE_TO_REGIME = {
    TvaMode.MENSUEL: REGIME_MENSUEL,
    TvaMode.TRIMESTRIEL: REGIME_TRIMESTRIEL,
    TvaMode.ANNUEL: REGIME_ANNUEL,
    TvaMode.NON_ASSUJETTI: REGIME_NON_ASSUJETTI,
}

REGIME_LABELS = {
    REGIME_MENSUEL: "Mensuel",
    REGIME_TRIMESTRIEL: "Trimestriel",
    REGIME_ANNUEL: "Annuel",
    REGIME_NON_ASSUJETTI: "Non-assujetti",
}

# Quarterly filers declare in the first month of each quarter
_TRIMESTRIEL_MONTHS = {1, 4, 7, 10}
_ANNUEL_MONTH = 5

# (month, day) of each corporate-tax payment
IS_INSTALLMENT_SCHEDULE: dict[ISInstallment, tuple[int, int]] = {
    ISInstallment.ACOMPTE_1: (3, 15),
    ISInstallment.SOLDE: (5, 15),
    ISInstallment.ACOMPTE_2: (6, 15),
    ISInstallment.ACOMPTE_3: (9, 15),
    ISInstallment.ACOMPTE_4: (12, 15),
}

IS_INSTALLMENT_LABELS: dict[ISInstallment, str] = {
    ISInstallment.ACOMPTE_1: "1er acompte IS",
    ISInstallment.ACOMPTE_2: "2e acompte IS",
    ISInstallment.ACOMPTE_3: "3e acompte IS",
    ISInstallment.ACOMPTE_4: "4e acompte IS",
    ISInstallment.SOLDE: "Solde IS",
}

# (month, day) of the single yearly deadline
ANNUAL_DEADLINES: dict[TacheType, tuple[int, int]] = {
    TacheType.CFE: (12, 15),
    TacheType.CVAE: (5, 15),
    TacheType.LIASSE: (5, 15),
}

# Micro-entrepreneurs file neither a liasse nor a CVAE return
_MICRO_EXCLUDED = {TacheType.CVAE, TacheType.LIASSE}

SCHEDULED_TYPES = (
    TacheType.TVA,
    TacheType.IS,
    TacheType.CFE,
    TacheType.CVAE,
    TacheType.LIASSE,
)


@dataclass(frozen=True)
class ScheduledObligation:
    """One obligation the calendar expects for a dossier."""
    type: TacheType
    period: str
    due_date: date
    installment: Optional[ISInstallment] = None

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "period": self.period,
            "due_date": self.due_date.isoformat(),
            "installment": self.installment.value if self.installment else None,
        }


# ---------------------------------------------------------------------------
# Period helpers
# ---------------------------------------------------------------------------

def parse_period(period: str) -> tuple[int, int]:
    """Split ``YYYY-MM`` into (year, month). Raises InvalidPeriodError."""
    try:
        year_s, month_s = str(period).split("-")
        year, month = int(year_s), int(month_s)
    except (TypeError, ValueError):
        raise InvalidPeriodError(f"Invalid period {period!r}, expected YYYY-MM")
    if len(year_s) != 4 or not 1 <= month <= 12:
        raise InvalidPeriodError(f"Invalid period {period!r}, expected YYYY-MM")
    return year, month


def format_period(year: int, month: int) -> str:
    return f"{year}-{month:02d}"


def period_of(d: date) -> str:
    return format_period(d.year, d.month)


def next_period(period: str) -> str:
    year, month = parse_period(period)
    if month == 12:
        return format_period(year + 1, 1)
    return format_period(year, month + 1)


def previous_period(period: str) -> str:
    year, month = parse_period(period)
    if month == 1:
        return format_period(year - 1, 12)
    return format_period(year, month - 1)


def year_periods(year: int) -> list[str]:
    """The twelve periods of a calendar year."""
    return [format_period(year, m) for m in range(1, 13)]


def period_date_range(period: str) -> tuple[date, date]:
    """Return (first_day, last_day) for a YYYY-MM period."""
    year, month = parse_period(period)
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])


def rolling_months(today: date, start_offset: int = -2, count: int = 14) -> list[str]:
    """Consecutive periods starting ``start_offset`` months from today.

    Default window is two months back and a year ahead, the dashboard matrix.
    """
    index = today.year * 12 + (today.month - 1) + start_offset
    months = []
    for i in range(count):
        year, month0 = divmod(index + i, 12)
        months.append(format_period(year, month0 + 1))
    return months


def _safe_date(year: int, month: int, day: int) -> date:
    return date(year, month, min(day, monthrange(year, month)[1]))


# ---------------------------------------------------------------------------
# Regimes
# ---------------------------------------------------------------------------

def tva_regime(dossier: Dossier) -> str:
    """Simplified VAT regime of a dossier.

    A dossier without a known VAT mode is treated as a monthly filer so that
    its obligations are shown rather than silently dropped.
    """
    if dossier.tva_mode is None:
        return REGIME_MENSUEL
    return _TVA_MODE_TO_REGIME.get(dossier.tva_mode, REGIME_MENSUEL)


def is_tva_active_for_period(regime: str, period: str) -> bool:
    """Whether a dossier under ``regime`` files VAT for ``period``."""
    _, month = parse_period(period)
    if regime == REGIME_NON_ASSUJETTI:
        return False
    if regime == REGIME_TRIMESTRIEL:
        return month in _TRIMESTRIEL_MONTHS
    if regime == REGIME_ANNUEL:
        return month == _ANNUEL_MONTH
    return True


def installment_for_period(period: str) -> Optional[ISInstallment]:
    """The IS installment due in ``period``'s month, if any."""
    _, month = parse_period(period)
    for installment, (m, _day) in IS_INSTALLMENT_SCHEDULE.items():
        if m == month:
            return installment
    return None


def installment_due_date(installment: ISInstallment, year: int) -> date:
    month, day = IS_INSTALLMENT_SCHEDULE[installment]
    return date(year, month, day)


def _regime_fiscal_allows(dossier: Dossier, tache_type: TacheType) -> bool:
    regime = dossier.regime_fiscal
    if tache_type == TacheType.IS:
        # Unknown regime: fail open
        return regime is None or regime == RegimeFiscal.IS
    if tache_type in _MICRO_EXCLUDED:
        return regime != RegimeFiscal.MICRO
    return True


# ---------------------------------------------------------------------------
# Public contract
# ---------------------------------------------------------------------------

def is_applicable(dossier: Dossier, tache_type: TacheType, period: str) -> bool:
    """Does an obligation of ``tache_type`` exist for this dossier in ``period``?"""
    try:
        year, month = parse_period(period)
    except InvalidPeriodError:
        logger.warning("Dossier %s: unparseable period %r", dossier.id, period)
        return False

    if tache_type == TacheType.TVA:
        return is_tva_active_for_period(tva_regime(dossier), period)

    if not _regime_fiscal_allows(dossier, tache_type):
        return False

    if tache_type == TacheType.IS:
        return installment_for_period(period) is not None

    if tache_type in ANNUAL_DEADLINES:
        return month == ANNUAL_DEADLINES[tache_type][0]

    # AUTRE obligations are entered by hand, never scheduled
    return False


def due_date(
    dossier: Dossier,
    tache_type: TacheType,
    period: str,
    installment: Optional[ISInstallment] = None,
) -> Optional[date]:
    """Deadline of the obligation, or None when the calendar has none.

    TVA for period M is due on ``tva_deadline_day`` of month M+1.
    IS is resolved by installment; when ``installment`` is omitted the one
    falling in ``period`` is used.
    """
    if not is_applicable(dossier, tache_type, period):
        return None

    year, month = parse_period(period)

    if tache_type == TacheType.TVA:
        due_year, due_month = parse_period(next_period(period))
        return _safe_date(due_year, due_month, dossier.tva_deadline_day)

    if tache_type == TacheType.IS:
        installment = installment or installment_for_period(period)
        if installment is None:
            return None
        return installment_due_date(installment, year)

    month, day = ANNUAL_DEADLINES[tache_type]
    return date(year, month, day)


def build_year_schedule(dossier: Dossier, year: int) -> list[ScheduledObligation]:
    """Every obligation the calendar expects for ``dossier`` during ``year``.

    Used when a dossier is onboarded to create one obligation per applicable
    period and type. Sorted by due date.
    """
    slots: list[ScheduledObligation] = []
    for tache_type in SCHEDULED_TYPES:
        for period in year_periods(year):
            if not is_applicable(dossier, tache_type, period):
                continue
            installment = (
                installment_for_period(period) if tache_type == TacheType.IS else None
            )
            due = due_date(dossier, tache_type, period, installment)
            if due is None:
                continue
            # Natural key period is the month the obligation falls due
            slots.append(ScheduledObligation(
                type=tache_type,
                period=period_of(due),
                due_date=due,
                installment=installment,
            ))

    slots.sort(key=lambda s: (s.due_date, s.type.value))
    logger.info(
        "Dossier %s: %d obligations scheduled for %d", dossier.id, len(slots), year
    )
    return slots
