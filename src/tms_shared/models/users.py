"""
models/users.py — Pydantic models for the users table and the
application-level authenticated user.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Literal

from pydantic import BaseModel

from tms_shared.constants import ROLES, UserRole
from tms_shared.models._coerce import blank_to_none


class UserProfile(BaseModel):
    """Matches the users table row."""

    id: str
    email: str
    name: str
    role: UserRole
    startup_name: str | None = None
    registration_date: date | None = None
    investor_code: str | None = None
    ca_code: str | None = None
    cs_code: str | None = None
    investment_advisor_code: str | None = None
    investment_advisor_code_entered: str | None = None
    government_id_url: str | None = None
    ca_license_url: str | None = None
    cs_license_url: str | None = None
    logo_url: str | None = None
    is_profile_complete: bool = False

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "UserProfile":
        row = blank_to_none(row, "registration_date", "startup_name")
        fields = {k: v for k, v in row.items() if k in cls.model_fields}
        if fields.get("is_profile_complete") is None:
            fields["is_profile_complete"] = False
        return cls(**fields)

    def to_insert_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "startup_name": self.startup_name,
            "registration_date": (
                self.registration_date.isoformat() if self.registration_date else None
            ),
        }


class AuthenticatedUser(BaseModel):
    """
    Application-level projection of the signed-in user.

    `form="basic"` users are built from session metadata alone and exist only
    to unblock the UI; `form="full"` users are hydrated from the users table.
    """

    id: str
    email: str
    name: str
    role: UserRole | None = None
    startup_name: str | None = None
    investor_code: str | None = None
    ca_code: str | None = None
    cs_code: str | None = None
    investment_advisor_code: str | None = None
    investment_advisor_code_entered: str | None = None
    registration_date: date | None = None
    government_id_url: str | None = None
    ca_license_url: str | None = None
    cs_license_url: str | None = None
    is_profile_complete: bool = False
    form: Literal["basic", "full"] = "basic"

    @property
    def is_full(self) -> bool:
        return self.form == "full"

    @classmethod
    def from_session_metadata(
        cls,
        user_id: str,
        email: str | None,
        metadata: dict[str, Any],
    ) -> "AuthenticatedUser":
        role = metadata.get("role")
        return cls(
            id=user_id,
            email=email or "",
            name=metadata.get("name") or "Unknown",
            role=role if role in ROLES else None,
            startup_name=metadata.get("startupName") or None,
            registration_date=date.today(),
            form="basic",
        )

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "AuthenticatedUser":
        return cls(
            id=profile.id,
            email=profile.email,
            name=profile.name,
            role=profile.role,
            startup_name=profile.startup_name,
            investor_code=profile.investor_code,
            ca_code=profile.ca_code,
            cs_code=profile.cs_code,
            investment_advisor_code=profile.investment_advisor_code,
            investment_advisor_code_entered=profile.investment_advisor_code_entered,
            registration_date=profile.registration_date,
            government_id_url=profile.government_id_url,
            ca_license_url=profile.ca_license_url,
            cs_license_url=profile.cs_license_url,
            is_profile_complete=profile.is_profile_complete,
            form="full",
        )


class AdvisorBranding(BaseModel):
    """Public profile of an investment advisor shown to their clients."""

    advisor_code: str
    name: str
    logo_url: str | None = None
