"""User profile data service."""

from __future__ import annotations

from datetime import date

from tms_shared.db import get_supabase_client
from tms_shared.models.users import AdvisorBranding, UserProfile


def get_profile(user_id: str) -> UserProfile | None:
    supabase = get_supabase_client()
    result = (
        supabase.table("users")
        .select("*")
        .eq("id", user_id)
        .limit(1)
        .execute()
    )
    return UserProfile.from_db_row(result.data[0]) if result.data else None


def create_profile(
    *,
    user_id: str,
    email: str,
    name: str,
    role: str,
    startup_name: str | None = None,
) -> UserProfile:
    profile = UserProfile(
        id=user_id,
        email=email,
        name=name,
        role=role,
        startup_name=startup_name,
        registration_date=date.today(),
    )
    supabase = get_supabase_client()
    result = supabase.table("users").insert(profile.to_insert_dict()).execute()
    return UserProfile.from_db_row(result.data[0]) if result.data else profile


def list_users() -> list[UserProfile]:
    supabase = get_supabase_client()
    result = (
        supabase.table("users")
        .select("*")
        .order("created_at", desc=True)
        .execute()
    )
    return [UserProfile.from_db_row(row) for row in result.data or []]


def get_advisor_branding(advisor_code: str) -> AdvisorBranding | None:
    supabase = get_supabase_client()
    result = (
        supabase.table("users")
        .select("name, logo_url, investment_advisor_code")
        .eq("role", "Investment Advisor")
        .eq("investment_advisor_code", advisor_code)
        .limit(1)
        .execute()
    )
    if not result.data:
        return None
    row = result.data[0]
    return AdvisorBranding(
        advisor_code=advisor_code,
        name=row.get("name") or "",
        logo_url=row.get("logo_url"),
    )
