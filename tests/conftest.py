"""Shared test fixtures for the fiscal-tracker test suite."""

import asyncio
from datetime import date

import pytest

from fiscal_tracker.domain.models.fiscal import Dossier, TacheFiscale


@pytest.fixture(scope="session")
def event_loop():
    """Use a single event loop for the entire test session."""
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


@pytest.fixture
def make_dossier():
    """Build a Dossier; defaults to a monthly VAT filer under IS."""
    def _make(**overrides) -> Dossier:
        data = {
            "id": "d-alpha",
            "nom": "Alpha Conseil",
            "code": "ALP",
            "forme_juridique": "SAS",
            "regime_fiscal": "IS",
            "tva_mode": "mensuel",
            "tva_deadline_day": 21,
            "branch_id": "b-paris",
        }
        data.update(overrides)
        return Dossier.model_validate(data)
    return _make


@pytest.fixture
def make_tache():
    """Build a TacheFiscale; defaults to an open TVA obligation."""
    counter = {"n": 0}

    def _make(due, **overrides) -> TacheFiscale:
        counter["n"] += 1
        data = {
            "id": f"t-{counter['n']}",
            "dossier_id": "d-alpha",
            "type": "TVA",
            "date_echeance": due,
            "statut": "a_faire",
        }
        data.update(overrides)
        return TacheFiscale.model_validate(data)
    return _make


@pytest.fixture
def today() -> date:
    return date(2025, 3, 20)
