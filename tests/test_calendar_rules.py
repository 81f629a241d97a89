# tests/test_calendar_rules.py
"""Tests for the French tax calendar: applicability, due dates, schedules."""

from datetime import date

import pytest

from fiscal_tracker.domain.errors import InvalidPeriodError
from fiscal_tracker.domain.models.fiscal import ISInstallment, TacheType
from fiscal_tracker.domain.services.calendar_rules import (
    REGIME_ANNUEL,
    REGIME_MENSUEL,
    REGIME_NON_ASSUJETTI,
    REGIME_TRIMESTRIEL,
    build_year_schedule,
    due_date,
    installment_due_date,
    installment_for_period,
    is_applicable,
    next_period,
    parse_period,
    period_date_range,
    previous_period,
    rolling_months,
    tva_regime,
    year_periods,
)


# ---------------------------------------------------------------------------
# Periods
# ---------------------------------------------------------------------------

class TestPeriods:
    def test_parse(self):
        assert parse_period("2025-07") == (2025, 7)

    @pytest.mark.parametrize("bad", ["2025-13", "2025-00", "25-01", "janvier", "", None])
    def test_parse_rejects_garbage(self, bad):
        with pytest.raises(InvalidPeriodError):
            parse_period(bad)

    def test_invalid_period_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_period("2025/01")

    def test_next_and_previous_cross_year(self):
        assert next_period("2024-12") == "2025-01"
        assert previous_period("2025-01") == "2024-12"

    def test_year_periods(self):
        periods = year_periods(2025)
        assert len(periods) == 12
        assert periods[0] == "2025-01"
        assert periods[-1] == "2025-12"

    def test_period_date_range_leap_february(self):
        assert period_date_range("2024-02") == (date(2024, 2, 1), date(2024, 2, 29))

    def test_rolling_months_default_window(self):
        months = rolling_months(date(2025, 1, 10))
        assert len(months) == 14
        assert months[0] == "2024-11"
        assert months[2] == "2025-01"
        assert months[-1] == "2025-12"


# ---------------------------------------------------------------------------
# Regimes and applicability
# ---------------------------------------------------------------------------

class TestTvaApplicability:
    def test_regime_mapping(self, make_dossier):
        assert tva_regime(make_dossier(tva_mode="mensuel")) == REGIME_MENSUEL
        assert tva_regime(make_dossier(tva_mode="trimestriel")) == REGIME_TRIMESTRIEL
        assert tva_regime(make_dossier(tva_mode="annuel")) == REGIME_ANNUEL
        assert tva_regime(make_dossier(tva_mode="non_assujetti")) == REGIME_NON_ASSUJETTI

    def test_unknown_mode_fails_open_to_monthly(self, make_dossier):
        assert tva_regime(make_dossier(tva_mode="hebdomadaire")) == REGIME_MENSUEL
        assert tva_regime(make_dossier(tva_mode=None)) == REGIME_MENSUEL

    def test_monthly_applies_every_period(self, make_dossier):
        dossier = make_dossier(tva_mode="mensuel")
        assert all(is_applicable(dossier, TacheType.TVA, p) for p in year_periods(2025))

    def test_quarterly_applies_to_first_month_of_quarter(self, make_dossier):
        dossier = make_dossier(tva_mode="trimestriel")
        active = [p for p in year_periods(2025) if is_applicable(dossier, TacheType.TVA, p)]
        assert active == ["2025-01", "2025-04", "2025-07", "2025-10"]

    def test_annual_applies_in_may_only(self, make_dossier):
        dossier = make_dossier(tva_mode="annuel")
        active = [p for p in year_periods(2025) if is_applicable(dossier, TacheType.TVA, p)]
        assert active == ["2025-05"]

    def test_non_assujetti_never_files(self, make_dossier):
        dossier = make_dossier(tva_mode="non_assujetti")
        assert not any(is_applicable(dossier, TacheType.TVA, p) for p in year_periods(2025))

    def test_unparseable_period_is_not_applicable(self, make_dossier):
        assert is_applicable(make_dossier(), TacheType.TVA, "2025-1x") is False


class TestOtherApplicability:
    def test_is_applies_only_to_is_regime(self, make_dossier):
        assert is_applicable(make_dossier(regime_fiscal="IS"), TacheType.IS, "2025-03")
        assert not is_applicable(make_dossier(regime_fiscal="IR"), TacheType.IS, "2025-03")

    def test_is_unknown_regime_fails_open(self, make_dossier):
        assert is_applicable(make_dossier(regime_fiscal=None), TacheType.IS, "2025-03")

    def test_is_only_in_installment_months(self, make_dossier):
        dossier = make_dossier()
        active = [p for p in year_periods(2025) if is_applicable(dossier, TacheType.IS, p)]
        assert active == ["2025-03", "2025-05", "2025-06", "2025-09", "2025-12"]

    def test_micro_skips_cvae_and_liasse_but_not_cfe(self, make_dossier):
        micro = make_dossier(regime_fiscal="MICRO")
        assert not is_applicable(micro, TacheType.CVAE, "2025-05")
        assert not is_applicable(micro, TacheType.LIASSE, "2025-05")
        assert is_applicable(micro, TacheType.CFE, "2025-12")

    def test_annual_types_in_their_month_only(self, make_dossier):
        dossier = make_dossier()
        assert is_applicable(dossier, TacheType.CFE, "2025-12")
        assert not is_applicable(dossier, TacheType.CFE, "2025-11")
        assert is_applicable(dossier, TacheType.CVAE, "2025-05")
        assert is_applicable(dossier, TacheType.LIASSE, "2025-05")

    def test_autre_never_scheduled(self, make_dossier):
        dossier = make_dossier()
        assert not any(is_applicable(dossier, TacheType.AUTRE, p) for p in year_periods(2025))


# ---------------------------------------------------------------------------
# Due dates
# ---------------------------------------------------------------------------

class TestDueDates:
    def test_monthly_tva_due_next_month(self, make_dossier):
        assert due_date(make_dossier(), TacheType.TVA, "2025-01") == date(2025, 2, 21)

    def test_december_tva_due_in_january(self, make_dossier):
        assert due_date(make_dossier(), TacheType.TVA, "2025-12") == date(2026, 1, 21)

    def test_deadline_day_is_per_dossier(self, make_dossier):
        dossier = make_dossier(tva_deadline_day=16)
        assert due_date(dossier, TacheType.TVA, "2025-01") == date(2025, 2, 16)

    def test_out_of_range_deadline_day_falls_back_to_21(self, make_dossier):
        dossier = make_dossier(tva_deadline_day=31)
        assert due_date(dossier, TacheType.TVA, "2025-01") == date(2025, 2, 21)

    def test_quarterly_off_month_has_no_due_date(self, make_dossier):
        assert due_date(make_dossier(tva_mode="trimestriel"), TacheType.TVA, "2025-02") is None

    @pytest.mark.parametrize(
        "installment,expected",
        [
            (ISInstallment.ACOMPTE_1, date(2025, 3, 15)),
            (ISInstallment.ACOMPTE_2, date(2025, 6, 15)),
            (ISInstallment.ACOMPTE_3, date(2025, 9, 15)),
            (ISInstallment.ACOMPTE_4, date(2025, 12, 15)),
            (ISInstallment.SOLDE, date(2025, 5, 15)),
        ],
    )
    def test_is_installments(self, installment, expected):
        assert installment_due_date(installment, 2025) == expected

    def test_is_installment_resolved_from_period(self, make_dossier):
        assert installment_for_period("2025-09") == ISInstallment.ACOMPTE_3
        assert installment_for_period("2025-04") is None
        assert due_date(make_dossier(), TacheType.IS, "2025-09") == date(2025, 9, 15)

    def test_annual_deadlines(self, make_dossier):
        dossier = make_dossier()
        assert due_date(dossier, TacheType.CFE, "2025-12") == date(2025, 12, 15)
        assert due_date(dossier, TacheType.CVAE, "2025-05") == date(2025, 5, 15)
        assert due_date(dossier, TacheType.LIASSE, "2025-05") == date(2025, 5, 15)

    def test_autre_and_garbage_have_no_due_date(self, make_dossier):
        dossier = make_dossier()
        assert due_date(dossier, TacheType.AUTRE, "2025-05") is None
        assert due_date(dossier, TacheType.TVA, "not-a-period") is None


# ---------------------------------------------------------------------------
# Year schedule
# ---------------------------------------------------------------------------

class TestYearSchedule:
    def test_monthly_is_dossier(self, make_dossier):
        slots = build_year_schedule(make_dossier(), 2025)
        by_type = {}
        for slot in slots:
            by_type.setdefault(slot.type, []).append(slot)

        assert len(by_type[TacheType.TVA]) == 12
        assert len(by_type[TacheType.IS]) == 5
        assert len(by_type[TacheType.CFE]) == 1
        assert len(by_type[TacheType.CVAE]) == 1
        assert len(by_type[TacheType.LIASSE]) == 1
        assert len(slots) == 20

    def test_sorted_by_due_date(self, make_dossier):
        slots = build_year_schedule(make_dossier(), 2025)
        dues = [s.due_date for s in slots]
        assert dues == sorted(dues)
        assert slots[0].type == TacheType.TVA
        assert slots[0].due_date == date(2025, 2, 21)

    def test_slot_period_is_due_month(self, make_dossier):
        slots = build_year_schedule(make_dossier(), 2025)
        december_tva = [s for s in slots if s.type == TacheType.TVA][-1]
        assert december_tva.period == "2026-01"
        assert december_tva.due_date == date(2026, 1, 21)

    def test_is_slots_carry_installment(self, make_dossier):
        slots = [s for s in build_year_schedule(make_dossier(), 2025) if s.type == TacheType.IS]
        assert [s.installment for s in slots] == [
            ISInstallment.ACOMPTE_1,
            ISInstallment.SOLDE,
            ISInstallment.ACOMPTE_2,
            ISInstallment.ACOMPTE_3,
            ISInstallment.ACOMPTE_4,
        ]

    def test_quarterly_ir_dossier(self, make_dossier):
        dossier = make_dossier(tva_mode="trimestriel", regime_fiscal="IR")
        slots = build_year_schedule(dossier, 2025)
        assert sorted(s.type.value for s in slots) == [
            "CFE", "CVAE", "LIASSE", "TVA", "TVA", "TVA", "TVA",
        ]

    def test_to_dict(self, make_dossier):
        slot = build_year_schedule(make_dossier(), 2025)[0]
        assert slot.to_dict() == {
            "type": "TVA",
            "period": "2025-02",
            "due_date": "2025-02-21",
            "installment": None,
        }
