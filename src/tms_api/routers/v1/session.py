"""Session endpoints: auth events in, orchestrator state out."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, Field

from tms_shared.constants import CURRENT_VIEW_COOKIE

from tms_core.auth.session import AuthEvent, AuthEventType
from tms_core.context import AppContext, ContextRegistry

from tms_api.dependencies import (
    SessionCredentials,
    get_context,
    get_credentials,
    get_registry,
)
from tms_api.responses import wrap_response
from tms_api.snapshots import session_snapshot

router = APIRouter(prefix="/session", tags=["session"])


class SessionEvent(BaseModel):
    event: AuthEventType
    sequence: int = Field(0, ge=0)


@router.post("/events")
async def post_event(
    body: SessionEvent,
    response: Response,
    wait: bool = Query(False, description="Wait for hydration and data load"),
    creds: SessionCredentials = Depends(get_credentials),
    ctx: AppContext = Depends(get_context),
    registry: ContextRegistry = Depends(get_registry),
):
    signed_out = body.event is AuthEventType.SIGNED_OUT
    await ctx.handle_event(
        AuthEvent(body.event, None if signed_out else creds.session, body.sequence)
    )
    if signed_out:
        snapshot = session_snapshot(ctx)
        registry.discard(creds.session.session_id)
        response.delete_cookie(CURRENT_VIEW_COOKIE)
        return wrap_response(snapshot)
    if wait:
        await ctx.settled()
    return wrap_response(session_snapshot(ctx))


@router.get("")
async def get_session(ctx: AppContext = Depends(get_context)):
    return wrap_response(session_snapshot(ctx))


@router.post("/refresh")
async def refresh(ctx: AppContext = Depends(get_context)):
    await ctx.force_data_refresh()
    return wrap_response(session_snapshot(ctx))


@router.post("/reset")
async def reset(
    response: Response,
    creds: SessionCredentials = Depends(get_credentials),
    ctx: AppContext = Depends(get_context),
    registry: ContextRegistry = Depends(get_registry),
):
    await ctx.reset_auth_state()
    snapshot = session_snapshot(ctx)
    registry.discard(creds.session.session_id)
    response.delete_cookie(CURRENT_VIEW_COOKIE)
    return wrap_response(snapshot)
