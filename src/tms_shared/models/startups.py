"""
models/startups.py — Pydantic models for startups, founders and
fundraising listings.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, Field

from tms_shared.constants import ComplianceStatus
from tms_shared.models._coerce import blank_to_none, none_to_zero

_NUMERIC = (
    "investment_value",
    "equity_allocation",
    "current_valuation",
    "total_funding",
    "total_revenue",
)


class Founder(BaseModel):
    """Matches the founders table row (ordered per startup)."""

    name: str
    email: str
    shares: int | None = None
    equity_percentage: float | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "Founder":
        return cls(
            name=row.get("name") or "",
            email=row.get("email") or "",
            shares=row.get("shares"),
            equity_percentage=row.get("equity_percentage"),
        )


class Startup(BaseModel):
    """Matches the startups table row, with founders embedded."""

    id: int
    name: str
    investment_type: str = "Unknown"
    investment_value: float = 0
    equity_allocation: float = 0
    current_valuation: float = 0
    compliance_status: ComplianceStatus = "Pending"
    sector: str = "Unknown"
    total_funding: float = 0
    total_revenue: float = 0
    registration_date: date | None = None
    founders: list[Founder] = Field(default_factory=list)
    total_shares: int | None = None
    esop_reserved_shares: int | None = None
    price_per_share: float | None = None
    country: str | None = None
    company_type: str | None = None
    ca_service_code: str | None = None
    cs_service_code: str | None = None
    investment_advisor_code: str | None = None
    user_id: str | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "Startup":
        row = blank_to_none(row, "registration_date")
        row = none_to_zero(row, *_NUMERIC)
        fields = {k: v for k, v in row.items() if k in cls.model_fields}
        fields["founders"] = [Founder.from_db_row(f) for f in row.get("founders") or []]
        for key, fallback in (
            ("investment_type", "Unknown"),
            ("sector", "Unknown"),
            ("compliance_status", "Pending"),
        ):
            if not fields.get(key):
                fields[key] = fallback
        return cls(**fields)

    def to_insert_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "investment_type": self.investment_type,
            "investment_value": self.investment_value,
            "equity_allocation": self.equity_allocation,
            "current_valuation": self.current_valuation,
            "compliance_status": self.compliance_status,
            "sector": self.sector,
            "total_funding": self.total_funding,
            "total_revenue": self.total_revenue,
            "registration_date": (
                self.registration_date.isoformat() if self.registration_date else None
            ),
            "user_id": self.user_id,
        }


class NewInvestment(BaseModel):
    """An active fundraising listing (fundraising_details joined to startups)."""

    id: int
    name: str
    investment_type: str
    investment_value: float = 0
    equity_allocation: float = 0
    sector: str = "Unknown"
    total_funding: float = 0
    total_revenue: float = 0
    registration_date: date | None = None
    pitch_deck_url: str | None = None
    pitch_video_url: str | None = None
    compliance_status: ComplianceStatus = "Pending"

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "NewInvestment":
        """Build from a fundraising_details row with its startup embedded."""
        startup = row.get("startup") or {}
        return cls(
            id=row.get("startup_id") or startup.get("id"),
            name=startup.get("name") or "",
            investment_type=row.get("type") or "Seed",
            investment_value=row.get("value") or 0,
            equity_allocation=row.get("equity") or 0,
            sector=startup.get("sector") or "Unknown",
            total_funding=startup.get("total_funding") or 0,
            total_revenue=startup.get("total_revenue") or 0,
            registration_date=startup.get("registration_date") or None,
            pitch_deck_url=row.get("pitch_deck_url"),
            pitch_video_url=row.get("pitch_video_url"),
            compliance_status=startup.get("compliance_status") or "Pending",
        )


class FundraisingDetails(BaseModel):
    """Ask terms a startup submits when it opens a round (fundraising_details row)."""

    investment_type: str = Field("Seed", min_length=1)
    value: float = Field(..., gt=0)
    equity: float = Field(..., gt=0, le=100)
    pitch_deck_url: str | None = None
    pitch_video_url: str | None = None
    validation_requested: bool = False

    def to_insert_dict(self, startup_id: int) -> dict[str, Any]:
        return {
            "startup_id": startup_id,
            "active": True,
            "type": self.investment_type,
            "value": self.value,
            "equity": self.equity,
            "pitch_deck_url": self.pitch_deck_url,
            "pitch_video_url": self.pitch_video_url,
            "validation_requested": self.validation_requested,
        }
