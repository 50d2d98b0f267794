"""Investment offer data service."""

from __future__ import annotations

from typing import Any

from tms_shared.db import get_supabase_client
from tms_shared.models.offers import InvestmentOffer

from tms_core.errors import EntityNotFoundError


def _to_offers(rows: list[dict[str, Any]] | None) -> list[InvestmentOffer]:
    return [InvestmentOffer.from_db_row(row) for row in rows or []]


def _single(rows: list[dict[str, Any]] | None, offer_id: int) -> InvestmentOffer:
    if not rows:
        raise EntityNotFoundError(
            f"Investment offer {offer_id} not found", details={"offer_id": offer_id}
        )
    return InvestmentOffer.from_db_row(rows[0])


def list_offers_for_investor(investor_email: str) -> list[InvestmentOffer]:
    supabase = get_supabase_client()
    result = (
        supabase.table("investment_offers")
        .select("*")
        .eq("investor_email", investor_email)
        .order("created_at", desc=True)
        .execute()
    )
    return _to_offers(result.data)


def list_all_offers() -> list[InvestmentOffer]:
    supabase = get_supabase_client()
    result = (
        supabase.table("investment_offers")
        .select("*")
        .order("created_at", desc=True)
        .execute()
    )
    return _to_offers(result.data)


def list_offers_for_startup(startup_id: int) -> list[InvestmentOffer]:
    supabase = get_supabase_client()
    result = (
        supabase.table("investment_offers")
        .select("*")
        .eq("startup_id", startup_id)
        .order("created_at", desc=True)
        .execute()
    )
    return _to_offers(result.data)


def get_offer(offer_id: int) -> InvestmentOffer | None:
    supabase = get_supabase_client()
    result = (
        supabase.table("investment_offers")
        .select("*")
        .eq("id", offer_id)
        .limit(1)
        .execute()
    )
    return InvestmentOffer.from_db_row(result.data[0]) if result.data else None


def has_pending_offer(investor_email: str, startup_id: int) -> bool:
    supabase = get_supabase_client()
    result = (
        supabase.table("investment_offers")
        .select("id")
        .eq("investor_email", investor_email)
        .eq("startup_id", startup_id)
        .eq("status", "pending")
        .limit(1)
        .execute()
    )
    return bool(result.data)


def create_offer(offer: InvestmentOffer) -> InvestmentOffer:
    supabase = get_supabase_client()
    result = supabase.table("investment_offers").insert(offer.to_insert_dict()).execute()
    return _single(result.data, offer.id)


def update_offer_terms(
    offer_id: int, offer_amount: float, equity_percentage: float
) -> InvestmentOffer:
    supabase = get_supabase_client()
    result = (
        supabase.table("investment_offers")
        .update({"offer_amount": offer_amount, "equity_percentage": equity_percentage})
        .eq("id", offer_id)
        .execute()
    )
    return _single(result.data, offer_id)


def update_offer_status(offer_id: int, status: str) -> InvestmentOffer:
    supabase = get_supabase_client()
    result = (
        supabase.table("investment_offers")
        .update({"status": status})
        .eq("id", offer_id)
        .execute()
    )
    return _single(result.data, offer_id)


def delete_offer(offer_id: int) -> None:
    supabase = get_supabase_client()
    supabase.table("investment_offers").delete().eq("id", offer_id).execute()
