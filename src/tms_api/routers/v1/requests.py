"""Verification, validation and startup-addition request endpoints."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from tms_shared.constants import Decision

from tms_core import mutations
from tms_core.context import AppContext
from tms_core.errors import EntityNotFoundError
from tms_core.services import startup_service

from tms_api.dependencies import require_role
from tms_api.responses import wrap_response

router = APIRouter(prefix="/requests", tags=["requests"])


class DecisionBody(BaseModel):
    decision: Decision


class ValidationDecision(DecisionBody):
    notes: str | None = None


class AdditionRequestCreate(BaseModel):
    startup_id: int
    investor_code: str | None = None
    amount: float = Field(..., ge=0)
    equity_allocated: float = Field(..., ge=0, le=100)


@router.post("/verification/{request_id}")
async def process_verification(
    request_id: int,
    body: DecisionBody,
    ctx: AppContext = Depends(require_role("Admin")),
):
    startup = await mutations.process_verification(ctx.loader, request_id, body.decision)
    return wrap_response(startup)


@router.post("/validation/{request_id}")
async def process_validation(
    request_id: int,
    body: ValidationDecision,
    ctx: AppContext = Depends(require_role("Admin")),
):
    request = await mutations.process_validation(
        ctx.loader, request_id, body.decision, body.notes
    )
    return wrap_response(request)


@router.post("/additions/{request_id}/accept")
async def accept_startup_request(
    request_id: int,
    ctx: AppContext = Depends(require_role("Investor")),
):
    startup = await mutations.accept_startup_request(
        ctx.loader, ctx.require_user(), request_id
    )
    return wrap_response(startup)


@router.post("/additions", status_code=201)
async def create_addition_request(
    body: AdditionRequestCreate,
    ctx: AppContext = Depends(require_role("Startup")),
):
    startup = ctx.loader.store.find("startups", body.startup_id)
    if startup is None:
        startup = await asyncio.to_thread(startup_service.get_startup, body.startup_id)
    if startup is None:
        raise EntityNotFoundError(
            f"Startup {body.startup_id} not found", details={"startup_id": body.startup_id}
        )

    request = await mutations.create_addition_request(
        ctx.loader,
        ctx.require_user(),
        startup,
        investor_code=body.investor_code,
        amount=body.amount,
        equity_allocated=body.equity_allocated,
    )
    return wrap_response(request)
