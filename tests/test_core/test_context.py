"""Tests for AppContext wiring and the per-session registry."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from tms_shared.models.startups import Startup
from tms_shared.models.users import UserProfile
from tms_core.auth.orchestrator import AuthState
from tms_core.auth.session import AuthEvent, AuthEventType, SupabaseAuthProvider
from tms_core.context import AppContext, ContextRegistry
from tms_core.errors import AuthError, EntityNotFoundError
from tms_core.router import ViewKind
from tests.conftest import make_session, startup_row, user_row

GET_PROFILE = "tms_core.services.user_service.get_profile"

FACILITATOR = "Startup Facilitation Center"


def _profile(**overrides) -> UserProfile:
    return UserProfile.from_db_row(user_row(**overrides))


def _startup(**overrides) -> Startup:
    return Startup.from_db_row(startup_row(**overrides))


async def _sign_in(ctx, profile, *, metadata=None):
    with patch(GET_PROFILE, return_value=profile):
        await ctx.handle_event(
            AuthEvent(AuthEventType.SIGNED_IN, make_session(metadata=metadata), 1)
        )
        await ctx.settled()


@pytest.mark.asyncio
async def test_startup_sign_in_lands_on_own_startup(provider, services):
    services["list_user_startups"].return_value = [_startup(id=1, name="Acme")]
    ctx = AppContext(provider)

    await _sign_in(ctx, _profile())

    view = ctx.view()
    assert ctx.orchestrator.state is AuthState.FULLY_AUTHENTICATED
    assert view.kind is ViewKind.STARTUP_HEALTH
    assert view.startup.name == "Acme"
    assert view.is_view_only is False
    services["list_user_startups"].assert_called_once_with("user-1")


@pytest.mark.asyncio
async def test_signed_out_context_routes_to_landing(provider):
    ctx = AppContext(provider)
    assert ctx.view().kind is ViewKind.LANDING
    with pytest.raises(AuthError):
        ctx.require_user()


@pytest.mark.asyncio
async def test_incomplete_profile_routes_to_registration_without_loading(provider, services):
    ctx = AppContext(provider)

    with patch(GET_PROFILE, return_value=_profile(is_profile_complete=False)):
        await ctx.handle_event(AuthEvent(AuthEventType.SIGNED_IN, make_session(), 1))
        await ctx.settled()

    assert ctx.view().kind is ViewKind.COMPLETE_REGISTRATION


@pytest.mark.asyncio
async def test_sign_out_clears_data_and_navigation(provider, services):
    services["list_user_startups"].return_value = [_startup()]
    ctx = AppContext(provider)
    await _sign_in(ctx, _profile())

    await ctx.handle_event(AuthEvent(AuthEventType.SIGNED_OUT))

    assert ctx.loader.has_initial_data_loaded is False
    assert ctx.loader.collections.startups == []
    assert ctx.navigation.selected_startup is None
    assert ctx.view().kind is ViewKind.LANDING


@pytest.mark.asyncio
async def test_profile_role_differs_from_metadata_reloads(provider, services):
    ctx = AppContext(provider)
    investor = _profile(
        role="Investor", startup_name=None, email="ivy@fund.vc", investor_code="INV-1"
    )

    await _sign_in(ctx, investor)

    assert ctx.loader.loaded_for.role == "Investor"
    services["list_offers_for_investor"].assert_called_with("ivy@fund.vc")
    assert ctx.view().kind is ViewKind.INVESTOR


@pytest.mark.asyncio
async def test_force_data_refresh_reloads(provider, services):
    ctx = AppContext(provider)
    await _sign_in(ctx, _profile(role="Admin", startup_name=None),
                   metadata={"name": "Root", "role": "Admin"})
    calls = services["list_all_startups"].call_count

    await ctx.force_data_refresh()

    assert services["list_all_startups"].call_count == calls + 1


@pytest.mark.asyncio
async def test_reset_auth_state_signs_out(provider, services):
    ctx = AppContext(provider)
    await _sign_in(ctx, _profile())

    await ctx.reset_auth_state()

    provider.sign_out.assert_awaited_once()
    assert ctx.user is None
    assert ctx.loader.has_initial_data_loaded is False


@pytest.mark.asyncio
async def test_facilitator_can_open_uncached_startup(provider, services):
    ctx = AppContext(provider)
    await _sign_in(
        ctx,
        _profile(role=FACILITATOR, startup_name=None),
        metadata={"name": "Hub", "role": FACILITATOR},
    )

    with patch(
        "tms_core.services.startup_service.get_startup",
        return_value=_startup(id=44, name="Remote"),
    ) as get_startup:
        startup = await ctx.view_startup(44, target_tab="compliance")

    get_startup.assert_called_once_with(44)
    view = ctx.view()
    assert startup.name == "Remote"
    assert view.kind is ViewKind.STARTUP_HEALTH
    assert view.is_view_only is True
    assert ctx.navigation.current_tab == "compliance"


@pytest.mark.asyncio
async def test_unknown_startup_for_other_roles(provider, services):
    ctx = AppContext(provider)
    await _sign_in(ctx, _profile(role="CA", startup_name=None, ca_code="CA-1"),
                   metadata={"name": "Cal", "role": "CA"})

    with patch("tms_core.services.startup_service.get_startup") as get_startup:
        with pytest.raises(EntityNotFoundError):
            await ctx.view_startup(999)
    get_startup.assert_not_called()


@pytest.mark.asyncio
async def test_back_to_portfolio_returns_to_dashboard(provider, services):
    services["list_assigned_startups"].return_value = [_startup(id=3, name="Gamma")]
    ctx = AppContext(provider)
    await _sign_in(ctx, _profile(role="CS", startup_name=None, cs_code="CS-1"),
                   metadata={"name": "Sam", "role": "CS"})

    await ctx.view_startup(3)
    assert ctx.view().kind is ViewKind.STARTUP_HEALTH

    ctx.back_to_portfolio()
    assert ctx.view().kind is ViewKind.CS
    assert ctx.navigation.is_view_only is False


@pytest.mark.asyncio
async def test_startup_back_to_portfolio_shows_own_dashboard(provider, services):
    services["list_user_startups"].return_value = [_startup(id=1, name="Acme")]
    ctx = AppContext(provider)
    await _sign_in(ctx, _profile())
    assert ctx.view().kind is ViewKind.STARTUP_HEALTH

    ctx.back_to_portfolio()

    view = ctx.view()
    assert view.kind is ViewKind.STARTUP
    assert view.startup.name == "Acme"


@pytest.mark.asyncio
async def test_tab_listeners_and_unsubscribe(provider):
    ctx = AppContext(provider)
    seen = []
    unsubscribe = ctx.add_tab_listener(seen.append)

    ctx.set_tab("financials")
    unsubscribe()
    ctx.set_tab("cap-table")

    assert seen == ["financials"]
    assert ctx.navigation.current_tab == "cap-table"


@pytest.mark.asyncio
async def test_broken_tab_listener_does_not_stop_others(provider):
    ctx = AppContext(provider)
    seen = []

    def broken(tab):
        raise RuntimeError("listener bug")

    ctx.add_tab_listener(broken)
    ctx.add_tab_listener(seen.append)
    ctx.set_tab("offers")

    assert seen == ["offers"]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_registry_creates_one_context_per_session(provider):
    registry = ContextRegistry(lambda token: provider)

    first = registry.get_or_create("sess-1", "tok")
    assert registry.get_or_create("sess-1", "tok") is first
    assert registry.get_or_create("sess-2", "tok") is not first
    assert len(registry) == 2

    registry.discard("sess-1")
    assert registry.get("sess-1") is None
    assert len(registry) == 1


@pytest.mark.asyncio
async def test_registry_refreshes_access_token():
    registry = ContextRegistry(lambda token: SupabaseAuthProvider(MagicMock(), token))

    ctx = registry.get_or_create("sess-1", "old-token")
    registry.get_or_create("sess-1", "new-token")

    assert ctx.provider.access_token == "new-token"
