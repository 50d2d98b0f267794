"""
context.py — one authenticated session's orchestrator, loader and navigation.

`AppContext` wires the pieces together:

  orchestrator transition ──▶ _on_auth_change
      UNAUTHENTICATED           → loader.reset() (collections, navigation, branding)
      BASIC / FULL, first time  → loader.load(user)
      FULL differs from the user the data was loaded for
                                → loader.load(user, force_refresh=True)

Recovery hooks (`force_data_refresh`, `reset_auth_state`) are plain methods.
`ContextRegistry` holds one context per Supabase session id.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from tms_shared.constants import FACILITATOR_ROLE
from tms_shared.models.startups import Startup
from tms_shared.models.users import AuthenticatedUser

from tms_core.auth.orchestrator import AuthOrchestrator, AuthState
from tms_core.auth.session import AuthEvent, AuthProvider, SupabaseAuthProvider
from tms_core.errors import AuthError, EntityNotFoundError
from tms_core.loader import DataLoader, Navigation
from tms_core.router import RouteInput, View, is_view_only_role, route
from tms_core.services import startup_service
from tms_core.utils.logging import get_logger

log = get_logger(__name__)

TabListener = Callable[[str], None]

_LOADING_STATES = frozenset(
    {AuthState.BASIC_AUTHENTICATED, AuthState.FULLY_AUTHENTICATED}
)


def data_identity(user: AuthenticatedUser) -> tuple[str | None, ...]:
    """The user fields that decide what the loader fetches."""
    return (
        user.id,
        user.role,
        user.startup_name,
        user.investor_code,
        user.ca_code,
        user.cs_code,
        user.investment_advisor_code,
        user.investment_advisor_code_entered,
    )


class AppContext:
    def __init__(
        self,
        provider: AuthProvider,
        *,
        orchestrator: AuthOrchestrator | None = None,
        loader: DataLoader | None = None,
    ) -> None:
        self.provider = provider
        self.navigation = Navigation()
        self.orchestrator = orchestrator or AuthOrchestrator(provider)
        self.loader = loader or DataLoader(self.navigation)
        self.loader.navigation = self.navigation

        self._tab_listeners: list[TabListener] = []
        self._pending: set[asyncio.Task[None]] = set()
        self._sync_lock = asyncio.Lock()
        self.orchestrator.add_listener(self._on_auth_change)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def user(self) -> AuthenticatedUser | None:
        return self.orchestrator.user

    def view(self) -> View:
        return route(
            RouteInput(
                authenticated=self.orchestrator.is_authenticated,
                user=self.orchestrator.user,
                startups=tuple(self.loader.collections.startups),
                selected_startup=self.navigation.selected_startup,
                view_mode=self.navigation.view_mode,
                profile_incomplete=self.orchestrator.state is AuthState.PROFILE_INCOMPLETE,
            )
        )

    def require_user(self) -> AuthenticatedUser:
        user = self.orchestrator.user
        if user is None:
            raise AuthError("Not signed in.")
        return user

    async def settled(self) -> None:
        """Wait for profile hydration and every data sync it triggered."""
        await self.orchestrator.settled()
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ------------------------------------------------------------------
    # Session events and recovery hooks
    # ------------------------------------------------------------------

    async def handle_event(self, event: AuthEvent) -> None:
        await self.orchestrator.handle_event(event)

    async def force_data_refresh(self) -> None:
        user = self.require_user()
        log.info("force_data_refresh", user_id=user.id)
        async with self._sync_lock:
            await self.loader.load(user, force_refresh=True)

    async def reset_auth_state(self) -> None:
        await self.orchestrator.reset()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    async def view_startup(
        self, startup_or_id: Startup | int, target_tab: str | None = None
    ) -> Startup:
        user = self.require_user()

        if isinstance(startup_or_id, Startup):
            startup = startup_or_id
        else:
            startup = self.loader.store.find("startups", startup_or_id)
            if startup is None and user.role == FACILITATOR_ROLE:
                startup = await asyncio.to_thread(startup_service.get_startup, startup_or_id)
            if startup is None:
                raise EntityNotFoundError(
                    f"Startup {startup_or_id} not found",
                    details={"startup_id": startup_or_id},
                )

        self.navigation.selected_startup = startup
        self.navigation.view_mode = "startupHealth"
        self.navigation.is_view_only = is_view_only_role(user.role)
        log.info(
            "startup_opened",
            user_id=user.id,
            startup_id=startup.id,
            view_only=self.navigation.is_view_only,
        )
        if target_tab:
            self.set_tab(target_tab)
        return startup

    def back_to_portfolio(self) -> None:
        self.navigation.selected_startup = None
        self.navigation.view_mode = "dashboard"
        self.navigation.is_view_only = False

    def add_tab_listener(self, listener: TabListener) -> Callable[[], None]:
        self._tab_listeners.append(listener)
        return lambda: self._tab_listeners.remove(listener)

    def set_tab(self, tab: str) -> None:
        self.navigation.current_tab = tab
        for listener in list(self._tab_listeners):
            try:
                listener(tab)
            except Exception as exc:
                log.error("tab_listener_failed", tab=tab, error=str(exc), exc_info=True)

    # ------------------------------------------------------------------
    # Orchestrator reactions
    # ------------------------------------------------------------------

    def _on_auth_change(self, state: AuthState, user: AuthenticatedUser | None) -> None:
        if state is AuthState.UNAUTHENTICATED:
            self.loader.reset()
            return
        if state not in _LOADING_STATES or user is None or user.role is None:
            return

        task = asyncio.get_running_loop().create_task(self._sync_data(user))
        self._pending.add(task)
        task.add_done_callback(self._task_done)

    async def _sync_data(self, user: AuthenticatedUser) -> None:
        async with self._sync_lock:
            if self.orchestrator.user is not user:
                return
            loaded_for = self.loader.loaded_for
            force = loaded_for is not None and data_identity(loaded_for) != data_identity(user)
            if force:
                log.info("user_changed_reloading", user_id=user.id, role=user.role)
            await self.loader.load(user, force_refresh=force)

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.error("data_sync_failed", error=str(task.exception()))


class ContextRegistry:
    """Process-wide map of Supabase session id to its `AppContext`."""

    def __init__(self, provider_factory: Callable[[str | None], AuthProvider]) -> None:
        self._provider_factory = provider_factory
        self._contexts: dict[str, AppContext] = {}

    def get(self, session_id: str) -> AppContext | None:
        return self._contexts.get(session_id)

    def get_or_create(self, session_id: str, access_token: str | None = None) -> AppContext:
        ctx = self._contexts.get(session_id)
        if ctx is None:
            ctx = AppContext(self._provider_factory(access_token))
            self._contexts[session_id] = ctx
            log.info("context_created", session_id=session_id, active=len(self._contexts))
        elif access_token and isinstance(ctx.provider, SupabaseAuthProvider):
            ctx.provider.access_token = access_token
        return ctx

    def discard(self, session_id: str) -> None:
        if self._contexts.pop(session_id, None) is not None:
            log.info("context_discarded", session_id=session_id, active=len(self._contexts))

    def clear(self) -> None:
        self._contexts.clear()

    def __len__(self) -> int:
        return len(self._contexts)
