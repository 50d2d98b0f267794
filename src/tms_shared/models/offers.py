"""
models/offers.py — Pydantic model for the investment_offers table.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from tms_shared.constants import OfferStatus


class InvestmentOffer(BaseModel):
    """Matches the investment_offers table row."""

    id: int
    investor_email: str
    investor_name: str | None = None
    startup_name: str
    startup_id: int | None = None
    offer_amount: float
    equity_percentage: float
    status: OfferStatus = "pending"
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "InvestmentOffer":
        fields = {k: v for k, v in row.items() if k in cls.model_fields}
        return cls(**fields)

    def to_insert_dict(self) -> dict[str, Any]:
        return {
            "investor_email": self.investor_email,
            "startup_name": self.startup_name,
            "startup_id": self.startup_id,
            "offer_amount": self.offer_amount,
            "equity_percentage": self.equity_percentage,
            "status": self.status,
        }
