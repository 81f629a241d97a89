"""create fiscal tables

Revision ID: 3e8a41c07b52
Revises:
Create Date: 2026-10-17 09:12:05.218734

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID


# revision identifiers, used by Alembic.
revision = "3e8a41c07b52"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
    ]


def _completion() -> list[sa.Column]:
    return [
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_by", UUID(as_uuid=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "branches",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("organization_id", UUID(as_uuid=True), nullable=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_branches_organization_id", "branches", ["organization_id"])

    op.create_table(
        "profiles",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), nullable=True, unique=True),
        sa.Column("branch_id", UUID(as_uuid=True), sa.ForeignKey("branches.id"), nullable=True),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_profiles_branch_id", "profiles", ["branch_id"])

    op.create_table(
        "dossiers",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("branch_id", UUID(as_uuid=True), sa.ForeignKey("branches.id"), nullable=False),
        sa.Column("manager_id", UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("code", sa.String(50), nullable=True),
        sa.Column("nom", sa.String(200), nullable=False),
        sa.Column("siren", sa.String(15), nullable=True),
        sa.Column("forme_juridique", sa.String(10), server_default="AUTRE", nullable=False),
        sa.Column("regime_fiscal", sa.String(20), server_default="IS", nullable=False),
        sa.Column("tva_mode", sa.String(20), server_default="mensuel", nullable=False),
        sa.Column("tva_deadline_day", sa.SmallInteger(), server_default="21", nullable=False),
        sa.Column("cloture", sa.String(10), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("tva_deadline_day BETWEEN 15 AND 25", name="ck_dossiers_tva_deadline_day"),
    )
    op.create_index("ix_dossiers_branch_id", "dossiers", ["branch_id"])
    op.create_index("ix_dossiers_manager_id", "dossiers", ["manager_id"])

    op.create_table(
        "taches_fiscales",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column(
            "dossier_id",
            UUID(as_uuid=True),
            sa.ForeignKey("dossiers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("period", sa.String(7), nullable=False),
        sa.Column("date_echeance", sa.Date(), nullable=False),
        sa.Column("installment", sa.String(20), nullable=True),
        sa.Column("statut", sa.String(10), server_default="a_faire", nullable=False),
        sa.Column("montant", sa.Numeric(14, 2), nullable=True),
        sa.Column("commentaire", sa.Text(), nullable=True),
        *_completion(),
        *_timestamps(),
        sa.UniqueConstraint("dossier_id", "type", "period", name="uq_taches_dossier_type_period"),
    )
    op.create_index("ix_taches_fiscales_dossier_id", "taches_fiscales", ["dossier_id"])
    op.create_index("ix_taches_fiscales_date_echeance", "taches_fiscales", ["date_echeance"])

    op.create_table(
        "tva_history",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column(
            "dossier_id",
            UUID(as_uuid=True),
            sa.ForeignKey("dossiers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("period", sa.String(7), nullable=False),
        sa.Column("montant", sa.Numeric(14, 2), server_default="0", nullable=False),
        sa.Column("credit", sa.Numeric(14, 2), server_default="0", nullable=False),
        sa.Column("step_compta_recue", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("step_saisie_faite", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("step_dossier_revise", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("step_calcul_envoye", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("step_teletransmis", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("step_valide", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        *_completion(),
        *_timestamps(),
        sa.UniqueConstraint("dossier_id", "period", name="uq_tva_history_dossier_period"),
    )
    op.create_index("ix_tva_history_dossier_id", "tva_history", ["dossier_id"])


def downgrade() -> None:
    op.drop_table("tva_history")
    op.drop_table("taches_fiscales")
    op.drop_table("dossiers")
    op.drop_table("profiles")
    op.drop_table("branches")
