"""Startup endpoints backed by the session's cached collections."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from tms_shared.constants import ComplianceStatus
from tms_shared.models.startups import Founder, FundraisingDetails

from tms_core import mutations
from tms_core.context import AppContext

from tms_api.dependencies import get_context, require_role
from tms_api.responses import wrap_response

router = APIRouter(prefix="/startups", tags=["startups"])


class ComplianceChange(BaseModel):
    status: ComplianceStatus


class FounderList(BaseModel):
    founders: list[Founder]


@router.get("")
async def list_startups(ctx: AppContext = Depends(get_context)):
    ctx.require_user()
    return wrap_response(ctx.loader.collections.startups)


@router.patch("/{startup_id}/compliance")
async def update_compliance(
    startup_id: int,
    body: ComplianceChange,
    ctx: AppContext = Depends(require_role("Admin", "CA", "CS")),
):
    startup = await mutations.update_compliance(
        ctx.loader, ctx.require_user(), startup_id, body.status
    )
    return wrap_response(startup)


@router.put("/{startup_id}/founders")
async def update_founders(
    startup_id: int,
    body: FounderList,
    ctx: AppContext = Depends(require_role("Startup", "Admin")),
):
    startup = await mutations.update_founders(
        ctx.loader, ctx.require_user(), startup_id, body.founders
    )
    return wrap_response(startup)


@router.post("/{startup_id}/fundraising", status_code=201)
async def activate_fundraising(
    startup_id: int,
    body: FundraisingDetails,
    ctx: AppContext = Depends(require_role("Startup")),
):
    activation = await mutations.activate_fundraising(
        ctx.loader, ctx.require_user(), startup_id, body
    )
    return wrap_response(
        {
            "listing": activation.listing,
            "verification_request": activation.verification_request,
        }
    )
