"""
tms_shared.models — Pydantic models matching each database table.

These models are used by:
- tms_core: validate rows read from Supabase and build insert payloads
- tms_api: serialize session state and collections into API responses

Table-backed models provide:
  .from_db_row(row: dict) -> Model
  .to_insert_dict() -> dict      (where the service writes the table)
"""

from tms_shared.models.compliance import ComplianceRule, ComplianceRuleSet, ComplianceTask
from tms_shared.models.offers import InvestmentOffer
from tms_shared.models.requests import (
    StartupAdditionRequest,
    ValidationRequest,
    VerificationRequest,
)
from tms_shared.models.startups import Founder, FundraisingDetails, NewInvestment, Startup
from tms_shared.models.users import AdvisorBranding, AuthenticatedUser, UserProfile

__all__ = [
    "UserProfile",
    "AuthenticatedUser",
    "AdvisorBranding",
    "Founder",
    "Startup",
    "NewInvestment",
    "FundraisingDetails",
    "InvestmentOffer",
    "StartupAdditionRequest",
    "VerificationRequest",
    "ValidationRequest",
    "ComplianceRule",
    "ComplianceRuleSet",
    "ComplianceTask",
]
