"""
models/requests.py — Pydantic models for startup_addition_requests,
verification_requests and validation_requests.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel

from tms_shared.constants import RequestStatus
from tms_shared.models._coerce import blank_to_none, none_to_zero


class StartupAdditionRequest(BaseModel):
    """Matches the startup_addition_requests table row."""

    id: int
    name: str
    investment_type: str = "Seed"
    investment_value: float = 0
    equity_allocation: float = 0
    sector: str = "Unknown"
    total_funding: float = 0
    total_revenue: float = 0
    registration_date: date | None = None
    investor_code: str | None = None
    status: RequestStatus = "pending"

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "StartupAdditionRequest":
        row = blank_to_none(row, "registration_date")
        row = none_to_zero(
            row, "investment_value", "equity_allocation", "total_funding", "total_revenue"
        )
        fields = {k: v for k, v in row.items() if k in cls.model_fields}
        if not fields.get("status"):
            fields["status"] = "pending"
        return cls(**fields)

    def to_insert_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "investment_type": self.investment_type,
            "investment_value": self.investment_value,
            "equity_allocation": self.equity_allocation,
            "sector": self.sector,
            "total_funding": self.total_funding,
            "total_revenue": self.total_revenue,
            "registration_date": (
                self.registration_date.isoformat() if self.registration_date else None
            ),
            "investor_code": self.investor_code,
            "status": self.status,
        }


class VerificationRequest(BaseModel):
    """Matches the verification_requests table row."""

    id: int
    startup_id: int
    startup_name: str
    request_date: date | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "VerificationRequest":
        row = blank_to_none(row, "request_date")
        return cls(**{k: v for k, v in row.items() if k in cls.model_fields})


class ValidationRequest(BaseModel):
    """Matches the validation_requests table row."""

    id: int
    startup_id: int
    startup_name: str
    request_date: date | None = None
    status: RequestStatus = "pending"
    admin_notes: str | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "ValidationRequest":
        row = blank_to_none(row, "request_date")
        return cls(**{k: v for k, v in row.items() if k in cls.model_fields})
