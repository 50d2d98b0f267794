"""
auth/orchestrator.py — maps provider session events to one authenticated user.

State machine:

    UNAUTHENTICATED ──SIGNED_IN/INITIAL_SESSION──▶ BASIC_AUTHENTICATED
    BASIC_AUTHENTICATED ──profile hydrated, complete──▶ FULLY_AUTHENTICATED
    BASIC_AUTHENTICATED ──profile hydrated, incomplete──▶ PROFILE_INCOMPLETE
    PROFILE_INCOMPLETE ──SIGNED_IN/INITIAL_SESSION──▶ BASIC_AUTHENTICATED (re-hydrate)
    any ──SIGNED_OUT──▶ UNAUTHENTICATED

The basic user is synthesized from session metadata as soon as a sign-in is
accepted, so callers can render immediately; hydration from the users table
runs as a background task and upgrades it exactly once. TOKEN_REFRESHED never
causes a transition.

Usage:
    orchestrator = AuthOrchestrator(SupabaseAuthProvider(client))
    orchestrator.add_listener(lambda state, user: ...)
    await orchestrator.handle_event(AuthEvent(AuthEventType.SIGNED_IN, session))
    await orchestrator.settled()
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from enum import Enum

from tms_shared.config import settings
from tms_shared.constants import ROLES
from tms_shared.models.users import AuthenticatedUser, UserProfile

from tms_core.auth.session import AuthEvent, AuthEventType, AuthProvider, Session
from tms_core.errors import EmailNotConfirmedError, ProfileHydrationError
from tms_core.services import startup_service, user_service
from tms_core.utils.logging import get_logger

log = get_logger(__name__)


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    BASIC_AUTHENTICATED = "basic_authenticated"
    FULLY_AUTHENTICATED = "fully_authenticated"
    PROFILE_INCOMPLETE = "profile_incomplete"


Listener = Callable[[AuthState, AuthenticatedUser | None], None]


class DuplicateEventGuard:
    """
    Idempotency key for sign-in events.

    Remembers the (session_id, user_id) of the last accepted sign-in, the
    highest sequence number seen for it and when it was accepted. A later
    event for the same key is a duplicate if its sequence does not advance,
    or if it arrives inside the suppression window.
    """

    def __init__(
        self,
        window_s: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._window_s = window_s
        self._clock = clock
        self._key: tuple[str, str] | None = None
        self._sequence = 0
        self._accepted_at: float | None = None

    def is_duplicate(self, session: Session, sequence: int) -> bool:
        if self._key != (session.session_id, session.user_id) or self._accepted_at is None:
            return False
        if sequence and sequence <= self._sequence:
            return True
        return self._clock() - self._accepted_at < self._window_s

    def record(self, session: Session, sequence: int) -> None:
        key = (session.session_id, session.user_id)
        self._sequence = max(sequence, self._sequence) if key == self._key else sequence
        self._key = key
        self._accepted_at = self._clock()

    def clear(self) -> None:
        self._key = None
        self._sequence = 0
        self._accepted_at = None


class AuthOrchestrator:
    """Single writer of the authenticated user for one client session."""

    def __init__(
        self,
        provider: AuthProvider,
        *,
        duplicate_window_s: float | None = None,
        profile_timeout_s: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._provider = provider
        self._profile_timeout_s = (
            settings.profile_fetch_timeout_s if profile_timeout_s is None else profile_timeout_s
        )
        self._guard = DuplicateEventGuard(
            settings.duplicate_event_window_s
            if duplicate_window_s is None
            else duplicate_window_s,
            clock,
        )
        self._listeners: list[Listener] = []
        self._generation = 0
        self._hydration: asyncio.Task[None] | None = None
        self._session: Session | None = None

        self.state = AuthState.UNAUTHENTICATED
        self.user: AuthenticatedUser | None = None
        self.error: str | None = None
        self.is_processing = False

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def is_authenticated(self) -> bool:
        return self.state is not AuthState.UNAUTHENTICATED

    @property
    def session(self) -> Session | None:
        return self._session

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    async def settled(self) -> None:
        """Wait for an in-flight profile hydration, if any."""
        task = self._hydration
        if task is not None and not task.done():
            await asyncio.shield(task)

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    async def handle_event(self, event: AuthEvent) -> None:
        event_log = log.bind(
            auth_event=event.type.value,
            user_id=event.session.user_id if event.session else None,
            sequence=event.sequence,
        )

        if event.type is AuthEventType.TOKEN_REFRESHED:
            event_log.debug("token_refresh_ignored")
            return
        if event.type is AuthEventType.SIGNED_OUT:
            event_log.info("signed_out")
            self._clear()
            return
        if event.type in (AuthEventType.SIGNED_IN, AuthEventType.INITIAL_SESSION):
            await self._sign_in(event, event_log)
            return

        event_log.debug("auth_event_ignored")

    async def reset(self) -> None:
        """Sign out through the provider and drop every piece of auth state."""
        log.info("auth_state_reset", user_id=self.user.id if self.user else None)
        await self._provider.sign_out()
        self.error = None
        self._clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _sign_in(self, event: AuthEvent, event_log) -> None:
        session = event.session
        if session is None:
            event_log.info("no_session")
            self._clear()
            return

        if self.is_processing:
            event_log.info("auth_change_in_progress_skipped")
            return

        if self._already_hydrated(session) or self._guard.is_duplicate(
            session, event.sequence
        ):
            event_log.info("duplicate_auth_event_suppressed")
            return

        if not session.is_email_confirmed:
            event_log.warning("email_not_confirmed")
            await self._provider.sign_out()
            self._clear()
            self.error = EmailNotConfirmedError().message
            return

        self._guard.record(session, event.sequence)
        self._session = session
        self.error = None
        self.is_processing = True
        self._set(AuthState.BASIC_AUTHENTICATED, session.to_basic_user())
        event_log.info("basic_user_ready", role=self.user.role if self.user else None)

        self._hydration = asyncio.create_task(self._hydrate(session, self._generation))

    def _already_hydrated(self, session: Session) -> bool:
        return (
            self.state is AuthState.FULLY_AUTHENTICATED
            and self._session is not None
            and self._session.session_id == session.session_id
            and self.user is not None
            and self.user.id == session.user_id
        )

    async def _hydrate(self, session: Session, generation: int) -> None:
        hydrate_log = log.bind(user_id=session.user_id, session_id=session.session_id)
        t0 = time.monotonic()
        try:
            profile = await self._fetch_profile(session.user_id)
            if profile is None:
                profile = await self._create_missing_profile(session, hydrate_log)

            if generation != self._generation:
                hydrate_log.info("stale_hydration_dropped")
                return
            if profile is None:
                hydrate_log.warning("profile_unavailable_basic_user_retained")
                return

            user = AuthenticatedUser.from_profile(profile)
            if user.is_profile_complete:
                self._set(AuthState.FULLY_AUTHENTICATED, user)
            else:
                self._set(AuthState.PROFILE_INCOMPLETE, user)
            hydrate_log.info(
                "profile_hydrated",
                state=self.state.value,
                role=user.role,
                duration_ms=int((time.monotonic() - t0) * 1000),
            )
        except Exception as exc:
            hydrate_log.error(
                "profile_hydration_failed",
                error=str(exc),
                duration_ms=int((time.monotonic() - t0) * 1000),
                exc_info=True,
            )
        finally:
            if generation == self._generation:
                self.is_processing = False

    async def _fetch_profile(self, user_id: str) -> UserProfile | None:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(user_service.get_profile, user_id),
                timeout=self._profile_timeout_s,
            )
        except asyncio.TimeoutError as exc:
            raise ProfileHydrationError(
                f"Profile check timeout after {self._profile_timeout_s:g} seconds",
                details={"user_id": user_id},
            ) from exc

    async def _create_missing_profile(self, session: Session, hydrate_log) -> UserProfile | None:
        metadata = session.metadata
        name = metadata.get("name")
        role = metadata.get("role")
        if not name or role not in ROLES:
            hydrate_log.warning("profile_autocreate_skipped", has_name=bool(name), role=role)
            return None

        startup_name = metadata.get("startupName") or None
        hydrate_log.info("profile_autocreate", role=role)
        try:
            await asyncio.to_thread(
                user_service.create_profile,
                user_id=session.user_id,
                email=session.email or "",
                name=name,
                role=role,
                startup_name=startup_name,
            )
        except Exception as exc:
            raise ProfileHydrationError(
                f"Automatic profile creation failed: {exc}",
                details={"user_id": session.user_id},
            ) from exc

        if role == "Startup" and startup_name:
            try:
                created = await asyncio.to_thread(
                    startup_service.ensure_startup, startup_name, session.user_id
                )
                hydrate_log.info("startup_record_ensured", created=created)
            except Exception as exc:
                hydrate_log.warning("startup_autocreate_failed", error=str(exc))

        return await self._fetch_profile(session.user_id)

    def _clear(self) -> None:
        self._generation += 1
        self._session = None
        self._guard.clear()
        self.is_processing = False
        self._set(AuthState.UNAUTHENTICATED, None)

    def _set(self, state: AuthState, user: AuthenticatedUser | None) -> None:
        self.state = state
        self.user = user
        for listener in list(self._listeners):
            try:
                listener(state, user)
            except Exception as exc:
                log.error("auth_listener_failed", error=str(exc), exc_info=True)
