# fiscal_tracker/api/v1/schemas/tva.py
"""Request bodies for the VAT workflow endpoints."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field


class StepToggleRequest(BaseModel):
    value: bool
    actor_id: str | None = Field(default=None, description="Profile recorded when validating")


class TVADetailsRequest(BaseModel):
    """Fields left out keep their stored value."""
    montant: Decimal | None = Field(default=None, ge=0)
    credit: Decimal | None = Field(default=None, ge=0)
    note: str | None = None
