"""Supabase access-token authentication and per-session context lookup."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import structlog
from fastapi import Depends, HTTPException, Request
from jose import JWTError
from jose import jwt as jose_jwt

from tms_shared.config import settings
from tms_shared.db import get_supabase_client

from tms_core.auth.session import Session
from tms_core.context import AppContext, ContextRegistry
from tms_core.errors import AuthError

logger = structlog.get_logger(__name__)


@dataclass
class SessionCredentials:
    access_token: str
    session: Session
    claims: dict[str, Any] = field(default_factory=dict)


def _validate_jwt(token: str) -> dict[str, Any] | None:
    """Validate a Supabase JWT and return its claims."""
    try:
        return jose_jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
        )
    except JWTError:
        return None


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


async def get_credentials(request: Request) -> SessionCredentials:
    """Resolve the bearer token to the provider's view of the session.

    Raises AuthError (401) when the token is missing, invalid or unknown
    to the provider.
    """
    token = _bearer_token(request)
    if token is None:
        raise AuthError("Authentication required")

    claims = _validate_jwt(token)
    if claims is None or not claims.get("sub"):
        raise AuthError("Invalid or expired token")

    supabase = get_supabase_client()
    try:
        response = await asyncio.to_thread(supabase.auth.get_user, token)
    except Exception as exc:
        logger.warning("provider_user_lookup_failed", error=str(exc))
        raise AuthError("Invalid or expired token") from exc

    user = getattr(response, "user", None)
    if user is None:
        raise AuthError("Invalid or expired token")

    session_id = str(claims.get("session_id") or claims["sub"])
    structlog.contextvars.bind_contextvars(user_id=str(user.id), session_id=session_id)
    return SessionCredentials(
        access_token=token,
        session=Session.from_supabase(session_id, user),
        claims=claims,
    )


def get_registry(request: Request) -> ContextRegistry:
    return request.app.state.registry


async def get_context(
    creds: SessionCredentials = Depends(get_credentials),
    registry: ContextRegistry = Depends(get_registry),
) -> AppContext:
    return registry.get_or_create(creds.session.session_id, creds.access_token)


def require_role(*roles: str):
    """Dependency factory that requires a signed-in user holding one of *roles*."""

    async def _dependency(ctx: AppContext = Depends(get_context)) -> AppContext:
        user = ctx.require_user()
        if user.role not in roles:
            raise HTTPException(
                status_code=403,
                detail=f"This endpoint requires one of the roles {', '.join(roles)}. "
                f"Your current role is '{user.role}'.",
            )
        return ctx

    return _dependency
