"""Startup data service."""

from __future__ import annotations

from datetime import date
from typing import Any

from tms_shared.constants import DEFAULT_INVESTMENT_TYPE, DEFAULT_STARTUP_SECTOR
from tms_shared.db import get_supabase_client
from tms_shared.models.startups import Founder, Startup

from tms_core.errors import EntityNotFoundError

STARTUP_SELECT = "*, founders (*)"

# Column holding the assigned professional's code, per service role
_ASSIGNMENT_COLUMNS: dict[str, str] = {
    "CA": "ca_service_code",
    "CS": "cs_service_code",
}


def _to_startups(rows: list[dict[str, Any]] | None) -> list[Startup]:
    return [Startup.from_db_row(row) for row in rows or []]


def list_user_startups(user_id: str) -> list[Startup]:
    supabase = get_supabase_client()
    result = (
        supabase.table("startups")
        .select(STARTUP_SELECT)
        .eq("user_id", user_id)
        .order("created_at", desc=True)
        .execute()
    )
    return _to_startups(result.data)


def list_all_startups() -> list[Startup]:
    """Every startup, through the service-role client."""
    supabase = get_supabase_client(service_role=True)
    result = (
        supabase.table("startups")
        .select(STARTUP_SELECT)
        .order("created_at", desc=True)
        .execute()
    )
    return _to_startups(result.data)


def list_assigned_startups(role: str, code: str | None) -> list[Startup]:
    """Startups assigned to a CA or CS, without founders."""
    column = _ASSIGNMENT_COLUMNS.get(role)
    if column is None or not code:
        return []
    supabase = get_supabase_client()
    result = (
        supabase.table("startups")
        .select("*")
        .eq(column, code)
        .order("name")
        .execute()
    )
    startups = _to_startups(result.data)
    for startup in startups:
        startup.founders = []
    return startups


def get_startups_by_names(names: list[str]) -> list[Startup]:
    if not names:
        return []
    supabase = get_supabase_client()
    result = (
        supabase.table("startups")
        .select(STARTUP_SELECT)
        .in_("name", names)
        .execute()
    )
    return _to_startups(result.data)


def get_startup(startup_id: int) -> Startup | None:
    supabase = get_supabase_client()
    result = (
        supabase.table("startups")
        .select(STARTUP_SELECT)
        .eq("id", startup_id)
        .limit(1)
        .execute()
    )
    return Startup.from_db_row(result.data[0]) if result.data else None


def find_startup_by_name(name: str) -> Startup | None:
    supabase = get_supabase_client()
    result = (
        supabase.table("startups")
        .select(STARTUP_SELECT)
        .eq("name", name)
        .limit(1)
        .execute()
    )
    return Startup.from_db_row(result.data[0]) if result.data else None


def ensure_startup(name: str, user_id: str) -> bool:
    """Create a default startup row named *name* unless one exists.

    Returns True when a row was inserted.
    """
    supabase = get_supabase_client()
    existing = (
        supabase.table("startups")
        .select("id")
        .eq("name", name)
        .limit(1)
        .execute()
    )
    if existing.data:
        return False

    startup = Startup(
        id=0,
        name=name,
        investment_type=DEFAULT_INVESTMENT_TYPE,
        compliance_status="Pending",
        sector=DEFAULT_STARTUP_SECTOR,
        registration_date=date.today(),
        user_id=user_id,
    )
    supabase.table("startups").insert(startup.to_insert_dict()).execute()
    return True


def update_compliance(startup_id: int, status: str) -> Startup:
    supabase = get_supabase_client()
    result = (
        supabase.table("startups")
        .update({"compliance_status": status})
        .eq("id", startup_id)
        .execute()
    )
    if not result.data:
        raise EntityNotFoundError(
            f"No rows were updated. Startup ID {startup_id} may not exist "
            "or you may not have permission to change it.",
            details={"startup_id": startup_id},
        )
    return Startup.from_db_row(result.data[0])


def replace_founders(startup_id: int, founders: list[Founder]) -> list[Founder]:
    """Replace the founder list of a startup, preserving order."""
    supabase = get_supabase_client()
    supabase.table("founders").delete().eq("startup_id", startup_id).execute()
    if not founders:
        return []
    rows = [
        {
            "startup_id": startup_id,
            "name": f.name,
            "email": f.email,
            "shares": f.shares,
            "equity_percentage": f.equity_percentage,
        }
        for f in founders
    ]
    result = supabase.table("founders").insert(rows).execute()
    return [Founder.from_db_row(row) for row in result.data or rows]
