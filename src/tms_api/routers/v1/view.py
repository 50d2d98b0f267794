"""View endpoints: which page to show and what is selected on it."""

from __future__ import annotations

from fastapi import APIRouter, Cookie, Depends, Query, Response
from pydantic import BaseModel, Field

from tms_shared.config import settings
from tms_shared.constants import CURRENT_VIEW_COOKIE

from tms_core.context import AppContext

from tms_api.dependencies import get_context
from tms_api.responses import wrap_response
from tms_api.snapshots import view_snapshot

router = APIRouter(prefix="/view", tags=["view"])


class TabChange(BaseModel):
    tab: str = Field(..., min_length=1, max_length=64)


@router.get("")
async def get_view(
    ctx: AppContext = Depends(get_context),
    current_view: str | None = Cookie(None, alias=CURRENT_VIEW_COOKIE),
):
    if ctx.navigation.current_tab is None and current_view:
        ctx.navigation.current_tab = current_view
    return wrap_response(view_snapshot(ctx))


@router.post("/startups/{startup_id}")
async def open_startup(
    startup_id: int,
    tab: str | None = Query(None, description="Tab to open on the startup page"),
    ctx: AppContext = Depends(get_context),
):
    await ctx.view_startup(startup_id, tab)
    return wrap_response(view_snapshot(ctx))


@router.post("/back")
async def back_to_portfolio(ctx: AppContext = Depends(get_context)):
    ctx.back_to_portfolio()
    return wrap_response(view_snapshot(ctx))


@router.put("/tab")
async def set_tab(
    body: TabChange,
    response: Response,
    ctx: AppContext = Depends(get_context),
):
    ctx.set_tab(body.tab)
    response.set_cookie(
        CURRENT_VIEW_COOKIE,
        body.tab,
        max_age=settings.current_view_max_age_s,
        samesite="lax",
    )
    return wrap_response(view_snapshot(ctx))
