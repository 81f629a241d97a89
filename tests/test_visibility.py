# tests/test_visibility.py
"""Tests for the visibility window of obligations."""

from datetime import date

from fiscal_tracker.domain.services.visibility import (
    filter_visible,
    is_visible,
    visible_from,
)


def test_tva_visible_from_first_of_due_month(make_tache):
    tache = make_tache(date(2025, 2, 21))
    assert is_visible(tache, date(2025, 1, 31)) is False
    assert is_visible(tache, date(2025, 2, 1)) is True


def test_tva_window_ignores_deadline_day(make_tache):
    early = make_tache(date(2025, 2, 15))
    late = make_tache(date(2025, 2, 25))
    assert visible_from(early) == visible_from(late) == date(2025, 2, 1)


def test_other_types_visible_30_days_ahead(make_tache):
    tache = make_tache(date(2025, 6, 15), type="IS", installment="acompte_2")
    assert is_visible(tache, date(2025, 5, 15)) is False
    assert is_visible(tache, date(2025, 5, 16)) is True


def test_finished_statuses_always_visible(make_tache):
    far_future = date(2030, 1, 15)
    for statut in ("fait", "credit", "neant"):
        assert is_visible(make_tache(far_future, statut=statut), date(2025, 1, 1))


def test_open_far_future_hidden(make_tache):
    assert is_visible(make_tache(date(2030, 1, 15), type="CFE"), date(2025, 1, 1)) is False


def test_missing_due_date_hidden(make_tache):
    tache = make_tache("31/02/2025")
    assert tache.date_echeance is None
    assert is_visible(tache, date(2025, 1, 1)) is False


def test_filter_visible_preserves_order(make_tache):
    a = make_tache(date(2025, 2, 21))
    hidden = make_tache(date(2025, 4, 21))
    b = make_tache(date(2025, 1, 21))
    assert filter_visible([a, hidden, b], date(2025, 2, 10)) == [a, b]
