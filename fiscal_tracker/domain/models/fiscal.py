# fiscal_tracker/domain/models/fiscal.py
"""
Domain records consumed by the obligation engine.

These are snapshots of what the storage layer holds: dossiers, fiscal
obligations ("tâches fiscales") and VAT workflow rows. They are built with
``model_validate`` from ORM rows or plain dicts. Values that are present but
malformed (an unparseable due date, an unknown regime) are coerced to a
neutral value and logged instead of failing validation, so one bad row never
takes a whole portfolio view down.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fiscal_tracker.config.settings import settings

logger = logging.getLogger("fiscal_models")

TVA_DEADLINE_DAY_MIN = 15
TVA_DEADLINE_DAY_MAX = 25


class RegimeFiscal(str, Enum):
    IS = "IS"
    IR = "IR"
    MICRO = "MICRO"
    REEL_SIMPLIFIE = "REEL_SIMPLIFIE"
    REEL_NORMAL = "REEL_NORMAL"


class TvaMode(str, Enum):
    MENSUEL = "mensuel"
    TRIMESTRIEL = "trimestriel"
    ANNUEL = "annuel"
    NON_ASSUJETTI = "non_assujetti"


class FormeJuridique(str, Enum):
    SAS = "SAS"
    SARL = "SARL"
    EURL = "EURL"
    SA = "SA"
    SCI = "SCI"
    EI = "EI"
    SASU = "SASU"
    SNC = "SNC"
    AUTRE = "AUTRE"


class TacheType(str, Enum):
    TVA = "TVA"
    IS = "IS"
    CVAE = "CVAE"
    CFE = "CFE"
    LIASSE = "LIASSE"
    AUTRE = "AUTRE"


class TacheStatut(str, Enum):
    A_FAIRE = "a_faire"
    FAIT = "fait"
    RETARD = "retard"
    CREDIT = "credit"
    NEANT = "neant"


class ISInstallment(str, Enum):
    """Corporate-tax payments of a fiscal year: four advances and the balance."""
    ACOMPTE_1 = "acompte_1"
    ACOMPTE_2 = "acompte_2"
    ACOMPTE_3 = "acompte_3"
    ACOMPTE_4 = "acompte_4"
    SOLDE = "solde"


class UrgencyLevel(str, Enum):
    LATE = "late"
    URGENT = "urgent"
    SOON = "soon"
    DONE = "done"


class TVAStatus(str, Enum):
    NA = "na"
    DONE = "done"
    PROGRESS = "progress"
    TODO = "todo"


def _coerce_enum(enum_cls: type[Enum], value: Any, field: str, default: Any = None) -> Any:
    if value is None or value == "":
        return default
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning("Unknown %s value %r, using %r", field, value, default)
        return default


def _coerce_id(value: Any) -> Any:
    if value is None or isinstance(value, str):
        return value
    return str(value)


def _coerce_amount(value: Any, default: Optional[Decimal]) -> Optional[Decimal]:
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        logger.warning("Unparseable amount %r, using %r", value, default)
        return default


_TRUE_FLAGS = {"true", "t", "1", "yes"}
_FALSE_FLAGS = {"false", "f", "0", "no", ""}


def _coerce_flag(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_FLAGS:
            return True
        if text in _FALSE_FLAGS:
            return False
    logger.warning("Unparseable step flag %r, using False", value)
    return False


class Dossier(BaseModel):
    """A client file tracked by the firm."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    nom: str = ""
    code: Optional[str] = None
    siren: Optional[str] = None
    forme_juridique: Optional[FormeJuridique] = None
    regime_fiscal: Optional[RegimeFiscal] = None
    tva_mode: Optional[TvaMode] = None
    tva_deadline_day: int = Field(default_factory=lambda: settings.DEFAULT_TVA_DEADLINE_DAY)
    cloture: Optional[str] = None
    branch_id: Optional[str] = None
    manager_id: Optional[str] = None
    is_active: bool = True

    @field_validator("id", "branch_id", "manager_id", mode="before")
    @classmethod
    def _ids(cls, v):
        return _coerce_id(v)

    @field_validator("regime_fiscal", mode="before")
    @classmethod
    def _regime(cls, v):
        return _coerce_enum(RegimeFiscal, v, "regime_fiscal")

    @field_validator("tva_mode", mode="before")
    @classmethod
    def _tva_mode(cls, v):
        return _coerce_enum(TvaMode, v, "tva_mode")

    @field_validator("forme_juridique", mode="before")
    @classmethod
    def _forme(cls, v):
        return _coerce_enum(FormeJuridique, v, "forme_juridique", FormeJuridique.AUTRE)

    @field_validator("tva_deadline_day", mode="before")
    @classmethod
    def _deadline_day(cls, v):
        default = settings.DEFAULT_TVA_DEADLINE_DAY
        if v is None:
            return default
        try:
            day = int(v)
        except (TypeError, ValueError):
            logger.warning("Unparseable tva_deadline_day %r, using %d", v, default)
            return default
        if not TVA_DEADLINE_DAY_MIN <= day <= TVA_DEADLINE_DAY_MAX:
            logger.warning("tva_deadline_day %d outside 15-25, using %d", day, default)
            return default
        return day


class TacheFiscale(BaseModel):
    """One concrete obligation of one dossier."""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    dossier_id: str
    type: TacheType = TacheType.AUTRE
    date_echeance: Optional[date] = None
    statut: TacheStatut = TacheStatut.A_FAIRE
    montant: Optional[Decimal] = None
    commentaire: Optional[str] = None
    installment: Optional[ISInstallment] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[str] = None

    @field_validator("id", "dossier_id", "completed_by", mode="before")
    @classmethod
    def _ids(cls, v):
        return _coerce_id(v)

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v):
        return _coerce_enum(TacheType, v, "type", TacheType.AUTRE)

    @field_validator("statut", mode="before")
    @classmethod
    def _statut(cls, v):
        # Unknown statuses stay actionable so the obligation is still surfaced
        return _coerce_enum(TacheStatut, v, "statut", TacheStatut.A_FAIRE)

    @field_validator("installment", mode="before")
    @classmethod
    def _installment(cls, v):
        return _coerce_enum(ISInstallment, v, "installment")

    @field_validator("montant", mode="before")
    @classmethod
    def _montant(cls, v):
        return _coerce_amount(v, None)

    @field_validator("date_echeance", mode="before")
    @classmethod
    def _due_date(cls, v):
        if v is None or v == "":
            return None
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, date):
            return v
        try:
            return date.fromisoformat(str(v)[:10])
        except ValueError:
            logger.warning("Unparseable date_echeance %r, obligation left undated", v)
            return None

    @property
    def period(self) -> Optional[str]:
        """``YYYY-MM`` of the due date, the obligation's natural-key period."""
        if self.date_echeance is None:
            return None
        return self.date_echeance.strftime("%Y-%m")


class TVAHistory(BaseModel):
    """Six-step VAT workflow row for one (dossier, period)."""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    dossier_id: str
    period: str
    montant: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    step_compta_recue: bool = False
    step_saisie_faite: bool = False
    step_dossier_revise: bool = False
    step_calcul_envoye: bool = False
    step_teletransmis: bool = False
    step_valide: bool = False
    note: Optional[str] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[str] = None

    @field_validator("id", "dossier_id", "completed_by", mode="before")
    @classmethod
    def _ids(cls, v):
        return _coerce_id(v)

    @field_validator("montant", "credit", mode="before")
    @classmethod
    def _amounts(cls, v):
        return _coerce_amount(v, Decimal("0"))

    @field_validator(
        "step_compta_recue",
        "step_saisie_faite",
        "step_dossier_revise",
        "step_calcul_envoye",
        "step_teletransmis",
        "step_valide",
        mode="before",
    )
    @classmethod
    def _steps(cls, v):
        return _coerce_flag(v)


class Collaborator(BaseModel):
    """A firm member who may manage dossiers."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    full_name: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _ids(cls, v):
        return _coerce_id(v)
