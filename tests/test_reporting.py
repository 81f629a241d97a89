# tests/test_reporting.py
"""Tests for portfolio aggregation: lists, collaborator progress, sorting."""

from datetime import date, timedelta
from decimal import Decimal

from fiscal_tracker.domain.models.fiscal import Collaborator, TacheType
from fiscal_tracker.domain.services.reporting import (
    Severity,
    build_dashboard,
    collaborator_progress,
    dossier_task_stats,
    late_obligations,
    name_sort_key,
    near_term_obligations,
    obligation_amount_totals,
    obligation_matrix,
    pending_tasks,
    portfolio_stats,
    sort_portfolio,
)

TODAY = date(2025, 3, 20)


def _due_in(days: int) -> date:
    return TODAY + timedelta(days=days)


# ---------------------------------------------------------------------------
# Late / near-term lists
# ---------------------------------------------------------------------------

class TestLateList:
    def test_oldest_first_and_bounded(self, make_tache):
        taches = [make_tache(_due_in(-d)) for d in (3, 12, 1, 7)]
        late = late_obligations(taches, TODAY, limit=2)
        assert [a.days_until_due for a in late.items] == [-12, -7]
        assert late.total == 4
        assert late.remaining == 2

    def test_finished_obligations_not_late(self, make_tache):
        taches = [
            make_tache(_due_in(-5), statut="fait"),
            make_tache(_due_in(-5), statut="credit"),
            make_tache(_due_in(-5), statut="neant"),
        ]
        assert late_obligations(taches, TODAY).total == 0

    def test_to_dict(self, make_tache):
        data = late_obligations([make_tache(_due_in(-1))], TODAY).to_dict()
        assert data["total"] == 1
        assert data["remaining"] == 0
        assert data["limit"] == 10
        assert data["items"][0]["urgency"] == "late"


class TestNearTermList:
    def test_five_day_window(self, make_tache):
        taches = [make_tache(_due_in(d)) for d in (6, 0, 5, 2, -1)]
        near = near_term_obligations(taches, TODAY)
        assert [a.days_until_due for a in near.items] == [0, 2, 5]

    def test_limit_six(self, make_tache):
        taches = [make_tache(_due_in(d % 6)) for d in range(9)]
        near = near_term_obligations(taches, TODAY)
        assert len(near.items) == 6
        assert near.remaining == 3


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

class TestCollaboratorProgress:
    def test_late_outranks_percentage(self, make_dossier, make_tache):
        marie = Collaborator(id="p-marie", full_name="Marie")
        dossier = make_dossier(manager_id="p-marie")
        taches = [
            make_tache(date(2025, 3, 5)),
            make_tache(date(2025, 3, 10), statut="fait"),
            make_tache(date(2025, 3, 15), statut="fait"),
            make_tache(date(2025, 3, 25), statut="fait"),
        ]
        [stats] = collaborator_progress([marie], [dossier], taches, TODAY)
        assert stats.total == 4
        assert stats.done == 3
        assert stats.late == 1
        assert stats.percentage == 75
        assert stats.has_late is True
        assert stats.severity == Severity.URGENT

    def test_severity_bands(self, make_dossier, make_tache):
        people = [Collaborator(id=f"p-{i}", full_name=f"P{i}") for i in range(3)]
        dossiers = [make_dossier(id=f"d-{i}", manager_id=f"p-{i}") for i in range(3)]
        taches = []
        # p-0: 4/5 done, p-1: 1/2 done, p-2: 0/1 done; open ones not yet due
        for i, (done, open_) in enumerate([(4, 1), (1, 1), (0, 1)]):
            taches += [make_tache(date(2025, 3, 25), dossier_id=f"d-{i}", statut="fait") for _ in range(done)]
            taches += [make_tache(date(2025, 3, 28), dossier_id=f"d-{i}") for _ in range(open_)]

        stats = collaborator_progress(people, dossiers, taches, TODAY)
        assert [s.percentage for s in stats] == [80, 50, 0]
        assert [s.severity for s in stats] == [Severity.DONE, Severity.WARNING, Severity.TODO]

    def test_only_this_month_and_managed_dossiers(self, make_dossier, make_tache):
        marie = Collaborator(id="p-marie", full_name="Marie")
        luc = Collaborator(id="p-luc", full_name="Luc")
        mine = make_dossier(id="d-mine", manager_id="p-marie")
        other = make_dossier(id="d-other", manager_id=None)
        taches = [
            make_tache(date(2025, 3, 25), dossier_id="d-mine"),
            make_tache(date(2025, 4, 21), dossier_id="d-mine"),
            make_tache(date(2025, 3, 25), dossier_id="d-other"),
        ]
        stats = collaborator_progress([marie, luc], [mine, other], taches, TODAY)
        assert len(stats) == 1
        assert stats[0].collaborator.id == "p-marie"
        assert stats[0].total == 1


# ---------------------------------------------------------------------------
# Dossiers
# ---------------------------------------------------------------------------

class TestPortfolioSort:
    def test_late_dossier_first_regardless_of_name(self, make_dossier, make_tache):
        aaa = make_dossier(id="d-aaa", nom="AAA Holding")
        zzz = make_dossier(id="d-zzz", nom="ZZZ Transports")
        taches = [make_tache(_due_in(-2), dossier_id="d-zzz")]
        ordered = sort_portfolio([aaa, zzz], taches, TODAY)
        assert [d.id for d, _ in ordered] == ["d-zzz", "d-aaa"]
        assert ordered[0][1].late == 1

    def test_name_order_ignores_accents_and_case(self, make_dossier):
        names = ["fabre", "Éclair", "Dupont", "eclat"]
        dossiers = [make_dossier(id=f"d-{n}", nom=n) for n in names]
        ordered = sort_portfolio(dossiers, [], TODAY)
        assert [d.nom for d, _ in ordered] == ["Dupont", "Éclair", "eclat", "fabre"]

    def test_name_sort_key(self):
        assert name_sort_key("Éric") == name_sort_key("eric")


def test_dossier_task_stats(make_tache):
    taches = [
        make_tache(_due_in(-1)),
        make_tache(_due_in(3), statut="retard"),
        make_tache(_due_in(-9), statut="fait"),
        make_tache(_due_in(-9), statut="neant"),
    ]
    stats = dossier_task_stats(taches, TODAY)
    assert stats.to_dict() == {"total": 4, "pending": 2, "late": 1, "done": 1}


def test_pending_tasks_nearest_first(make_tache):
    taches = [
        make_tache(_due_in(10)),
        make_tache(_due_in(-4)),
        make_tache(_due_in(1), statut="fait"),
    ]
    assert [a.days_until_due for a in pending_tasks(taches, TODAY)] == [-4, 10]


def test_portfolio_stats(make_dossier, make_tache):
    dossiers = [make_dossier(id="d-1"), make_dossier(id="d-2", is_active=False)]
    taches = [
        make_tache(date(2025, 3, 21), statut="fait"),
        make_tache(date(2025, 3, 25)),
        make_tache(date(2025, 2, 21), statut="retard"),
    ]
    stats = portfolio_stats(dossiers, taches, TODAY)
    assert stats.to_dict() == {
        "active_dossiers": 1,
        "month_total": 2,
        "month_done": 1,
        "month_pending": 1,
        "flagged_late": 1,
    }


def test_obligation_matrix(make_dossier, make_tache):
    dossier = make_dossier(id="d-1", nom="Alpha")
    taches = [
        make_tache(date(2025, 2, 21), dossier_id="d-1", statut="fait", montant="120"),
        make_tache(date(2025, 3, 15), dossier_id="d-1", type="IS"),
    ]
    [row] = obligation_matrix([dossier], taches, ["2025-02", "2025-03"], TacheType.TVA)
    assert row["cells"]["2025-02"]["statut"] == "fait"
    assert row["cells"]["2025-02"]["montant"] == 120.0
    assert row["cells"]["2025-03"] is None


def test_obligation_matrix_cell_keyed_by_due_month(make_dossier, make_tache):
    dossier = make_dossier(id="d-1")
    taches = [make_tache(date(2025, 3, 21), dossier_id="d-1", statut="fait")]
    [row] = obligation_matrix([dossier], taches, ["2025-02", "2025-03"], TacheType.TVA)
    assert row["cells"]["2025-02"] is None
    assert row["cells"]["2025-03"]["statut"] == "fait"


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

def test_obligation_amount_totals_signed(make_tache):
    taches = [
        make_tache(TODAY, montant="300"),
        make_tache(TODAY, montant="-80"),
        make_tache(TODAY),
    ]
    totals = obligation_amount_totals(taches)
    assert totals.montant == Decimal("300")
    assert totals.credit == Decimal("80")
    assert totals.net == Decimal("220")


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

def test_dashboard_uses_visible_obligations_only(make_dossier, make_tache):
    marie = Collaborator(id="p-marie", full_name="Marie")
    dossier = make_dossier(id="d-1", manager_id="p-marie")
    taches = [
        make_tache(_due_in(-3), dossier_id="d-1"),
        make_tache(_due_in(2), dossier_id="d-1", type="IS"),
        # outside its 30-day window
        make_tache(_due_in(60), dossier_id="d-1", type="CFE"),
        # dossier not in the portfolio
        make_tache(_due_in(-3), dossier_id="d-gone"),
    ]
    dashboard = build_dashboard([dossier], taches, [marie], TODAY, late_limit=5, near_term_limit=5)
    assert dashboard.late.total == 1
    assert dashboard.near_term.total == 1
    assert dashboard.stats.month_total == 2

    data = dashboard.to_dict()
    assert data["today"] == "2025-03-20"
    assert data["dossiers"][0]["stats"]["late"] == 1
    assert data["collaborators"][0]["severity"] == "urgent"
