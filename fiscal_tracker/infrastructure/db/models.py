import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from fiscal_tracker.infrastructure.db.base import Base


class Branch(Base):
    __tablename__ = "branches"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), index=True)
    name = Column(String(100), nullable=False)
    city = Column(String(100))
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
    dossiers = relationship("Dossier", back_populates="branch")


class Profile(Base):
    """Firm member; the collaborators who manage dossiers."""
    __tablename__ = "profiles"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), unique=True)
    branch_id = Column(UUID(as_uuid=True), ForeignKey("branches.id"), index=True)
    full_name = Column(String(200), nullable=False)
    email = Column(String(255))
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))


class Dossier(Base):
    __tablename__ = "dossiers"
    __table_args__ = (
        CheckConstraint("tva_deadline_day BETWEEN 15 AND 25", name="ck_dossiers_tva_deadline_day"),
    )
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    branch_id = Column(UUID(as_uuid=True), ForeignKey("branches.id"), nullable=False, index=True)
    manager_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), index=True)
    code = Column(String(50))
    nom = Column(String(200), nullable=False)
    siren = Column(String(15))
    forme_juridique = Column(String(10), nullable=False, server_default="AUTRE")
    regime_fiscal = Column(String(20), nullable=False, server_default="IS")
    tva_mode = Column(String(20), nullable=False, server_default="mensuel")
    tva_deadline_day = Column(SmallInteger, nullable=False, server_default="21")
    cloture = Column(String(10))
    is_active = Column(Boolean, nullable=False, server_default=text("true"))
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
    branch = relationship("Branch", back_populates="dossiers")


class TacheFiscale(Base):
    __tablename__ = "taches_fiscales"
    __table_args__ = (
        UniqueConstraint("dossier_id", "type", "period", name="uq_taches_dossier_type_period"),
    )
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    dossier_id = Column(UUID(as_uuid=True), ForeignKey("dossiers.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(10), nullable=False)
    # YYYY-MM of date_echeance, the natural-key period
    period = Column(String(7), nullable=False)
    date_echeance = Column(Date, nullable=False, index=True)
    installment = Column(String(20))
    statut = Column(String(10), nullable=False, server_default="a_faire")
    montant = Column(Numeric(14, 2))
    commentaire = Column(Text)
    completed_at = Column(DateTime(timezone=True))
    completed_by = Column(UUID(as_uuid=True))
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))


class TVAHistory(Base):
    __tablename__ = "tva_history"
    __table_args__ = (
        UniqueConstraint("dossier_id", "period", name="uq_tva_history_dossier_period"),
    )
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    dossier_id = Column(UUID(as_uuid=True), ForeignKey("dossiers.id", ondelete="CASCADE"), nullable=False, index=True)
    period = Column(String(7), nullable=False)
    montant = Column(Numeric(14, 2), nullable=False, server_default="0")
    credit = Column(Numeric(14, 2), nullable=False, server_default="0")
    step_compta_recue = Column(Boolean, nullable=False, server_default=text("false"))
    step_saisie_faite = Column(Boolean, nullable=False, server_default=text("false"))
    step_dossier_revise = Column(Boolean, nullable=False, server_default=text("false"))
    step_calcul_envoye = Column(Boolean, nullable=False, server_default=text("false"))
    step_teletransmis = Column(Boolean, nullable=False, server_default=text("false"))
    step_valide = Column(Boolean, nullable=False, server_default=text("false"))
    note = Column(Text)
    completed_at = Column(DateTime(timezone=True))
    completed_by = Column(UUID(as_uuid=True))
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
