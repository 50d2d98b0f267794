"""
constants.py — shared constants used across the core package and the API.

Roles, status enumerations and typed literals are defined here so they stay
in sync with the values stored in the Supabase tables.
"""

from __future__ import annotations

from typing import Final, Literal

# ---------------------------------------------------------------------------
# Roles: must match users.role values
# ---------------------------------------------------------------------------
UserRole = Literal[
    "Investor",
    "Startup",
    "CA",
    "CS",
    "Admin",
    "Startup Facilitation Center",
    "Investment Advisor",
]

ROLES: Final[tuple[str, ...]] = (
    "Investor",
    "Startup",
    "CA",
    "CS",
    "Admin",
    "Startup Facilitation Center",
    "Investment Advisor",
)

FACILITATOR_ROLE: Final[str] = "Startup Facilitation Center"

# Roles that open a startup's detail page read-only
VIEW_ONLY_ROLES: Final[frozenset[str]] = frozenset(
    {"CA", "CS", FACILITATOR_ROLE, "Investor"}
)

# Roles that list every startup through the service-role client
PRIVILEGED_STARTUP_ROLES: Final[frozenset[str]] = frozenset(
    {"Admin", "Investment Advisor"}
)

# ---------------------------------------------------------------------------
# Compliance
# ---------------------------------------------------------------------------
ComplianceStatus = Literal["Compliant", "Pending", "Non-Compliant"]
COMPLIANCE_STATUSES: Final[tuple[str, ...]] = ("Compliant", "Pending", "Non-Compliant")

# ---------------------------------------------------------------------------
# Investment offers
# ---------------------------------------------------------------------------
OfferStatus = Literal[
    "pending",
    "pending_investor_advisor_approval",
    "pending_startup_advisor_approval",
    "approved",
    "rejected",
    "accepted",
    "completed",
]
OFFER_STATUSES: Final[tuple[str, ...]] = (
    "pending",
    "pending_investor_advisor_approval",
    "pending_startup_advisor_approval",
    "approved",
    "rejected",
    "accepted",
    "completed",
)

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------
RequestStatus = Literal["pending", "approved", "rejected"]
Decision = Literal["approved", "rejected"]

InvestmentType = Literal["Pre-Seed", "Seed", "Series A", "Series B", "Bridge"]

# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------
ViewMode = Literal["dashboard", "startupHealth"]

# Standalone marketing pages served outside the authenticated application
PUBLIC_PATHS: Final[frozenset[str]] = frozenset(
    {
        "/privacy-policy",
        "/cancellation-refunds",
        "/shipping",
        "/terms-conditions",
        "/about",
        "/contact",
        "/products",
    }
)

CURRENT_VIEW_COOKIE: Final[str] = "currentView"

# Defaults used when a startup row is created from sign-up metadata
DEFAULT_STARTUP_SECTOR: Final[str] = "Technology"
DEFAULT_INVESTMENT_TYPE: Final[str] = "Seed"
