"""Fundraising listing data service."""

from __future__ import annotations

from tms_shared.db import get_supabase_client
from tms_shared.models.startups import FundraisingDetails, NewInvestment, Startup


def list_new_investments() -> list[NewInvestment]:
    """Startups actively raising, newest first."""
    supabase = get_supabase_client()
    result = (
        supabase.table("fundraising_details")
        .select("*, startup:startups(*)")
        .eq("active", True)
        .order("created_at", desc=True)
        .execute()
    )
    return [
        NewInvestment.from_db_row(row)
        for row in result.data or []
        if row.get("startup_id") or row.get("startup")
    ]


def create_fundraising_listing(startup: Startup, details: FundraisingDetails) -> NewInvestment:
    """Insert an active fundraising_details row and return it as a listing."""
    supabase = get_supabase_client()
    payload = details.to_insert_dict(startup.id)
    result = supabase.table("fundraising_details").insert(payload).execute()
    row = result.data[0] if result.data else payload
    return NewInvestment.from_db_row({**row, "startup": startup.model_dump(mode="json")})
