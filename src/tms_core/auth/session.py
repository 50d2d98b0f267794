"""
auth/session.py — session values observed from the hosted auth provider.

The provider owns the session lifecycle; this module only describes what the
orchestrator sees: a `Session` snapshot and the `AuthEvent` that carried it.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

from supabase import Client

from tms_shared.models.users import AuthenticatedUser

from tms_core.utils.logging import get_logger

log = get_logger(__name__)


class AuthEventType(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    INITIAL_SESSION = "INITIAL_SESSION"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"


@dataclass(frozen=True)
class Session:
    """Opaque provider session, reduced to the fields the application reads."""

    session_id: str
    user_id: str
    email: str | None = None
    email_confirmed_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_email_confirmed(self) -> bool:
        return self.email_confirmed_at is not None

    def to_basic_user(self) -> AuthenticatedUser:
        return AuthenticatedUser.from_session_metadata(
            self.user_id, self.email, self.metadata
        )

    @classmethod
    def from_supabase(cls, session_id: str, user: Any) -> "Session":
        """Build from a supabase-py `User` object."""
        confirmed = getattr(user, "email_confirmed_at", None)
        if isinstance(confirmed, str):
            confirmed = datetime.fromisoformat(confirmed.replace("Z", "+00:00"))
        return cls(
            session_id=session_id,
            user_id=str(user.id),
            email=getattr(user, "email", None),
            email_confirmed_at=confirmed,
            metadata=dict(getattr(user, "user_metadata", None) or {}),
        )


@dataclass(frozen=True)
class AuthEvent:
    type: AuthEventType
    session: Session | None = None
    # Monotonic per session; 0 means "not sequenced by the sender"
    sequence: int = 0


class AuthProvider(Protocol):
    async def sign_out(self) -> None: ...


class SupabaseAuthProvider:
    """
    Signs a session out through supabase-py's auth client.

    With an access token (server side) the token is revoked through the
    admin API of a service-role client; without one the client's own
    session is signed out.
    """

    def __init__(self, client: Client, access_token: str | None = None) -> None:
        self._client = client
        self.access_token = access_token

    async def sign_out(self) -> None:
        try:
            if self.access_token:
                await asyncio.to_thread(self._client.auth.admin.sign_out, self.access_token)
            else:
                await asyncio.to_thread(self._client.auth.sign_out)
        except Exception as exc:
            # Local state is cleared either way
            log.warning("provider_sign_out_failed", error=str(exc))
