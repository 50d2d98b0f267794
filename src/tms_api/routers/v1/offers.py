"""Investment offer endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from tms_shared.constants import OfferStatus

from tms_core import mutations
from tms_core.context import AppContext

from tms_api.dependencies import get_context, require_role
from tms_api.responses import wrap_response

router = APIRouter(prefix="/offers", tags=["offers"])


class OfferCreate(BaseModel):
    startup_id: int
    startup_name: str = Field(..., min_length=1)
    offer_amount: float
    equity_percentage: float


class OfferTerms(BaseModel):
    offer_amount: float
    equity_percentage: float


class OfferStatusChange(BaseModel):
    status: OfferStatus


@router.get("")
async def list_offers(ctx: AppContext = Depends(get_context)):
    ctx.require_user()
    return wrap_response(ctx.loader.collections.investment_offers)


@router.post("", status_code=201)
async def submit_offer(
    body: OfferCreate,
    ctx: AppContext = Depends(require_role("Investor")),
):
    offer = await mutations.submit_offer(
        ctx.loader,
        ctx.require_user(),
        startup_id=body.startup_id,
        startup_name=body.startup_name,
        offer_amount=body.offer_amount,
        equity_percentage=body.equity_percentage,
    )
    return wrap_response(offer)


@router.patch("/{offer_id}")
async def update_offer(
    offer_id: int,
    body: OfferTerms,
    ctx: AppContext = Depends(require_role("Investor")),
):
    offer = await mutations.update_offer(
        ctx.loader, ctx.require_user(), offer_id, body.offer_amount, body.equity_percentage
    )
    return wrap_response(offer)


@router.delete("/{offer_id}", status_code=204)
async def cancel_offer(
    offer_id: int,
    ctx: AppContext = Depends(require_role("Investor")),
):
    await mutations.cancel_offer(ctx.loader, ctx.require_user(), offer_id)


@router.post("/{offer_id}/status")
async def process_offer(
    offer_id: int,
    body: OfferStatusChange,
    ctx: AppContext = Depends(require_role("Admin", "Startup")),
):
    offer = await mutations.process_offer(
        ctx.loader, ctx.require_user(), offer_id, body.status
    )
    return wrap_response(offer)


@router.post("/{offer_id}/approve")
async def approve_offer(
    offer_id: int,
    ctx: AppContext = Depends(require_role("Admin", "Investment Advisor")),
):
    offer = await mutations.approve_offer(ctx.loader, ctx.require_user(), offer_id)
    return wrap_response(offer)
