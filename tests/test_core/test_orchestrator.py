"""Tests for the auth orchestrator state machine."""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest

from tms_shared.models.users import UserProfile
from tms_core.auth.orchestrator import AuthOrchestrator, AuthState, DuplicateEventGuard
from tms_core.auth.session import AuthEvent, AuthEventType
from tests.conftest import make_session, user_row


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _profile(**overrides) -> UserProfile:
    return UserProfile.from_db_row(user_row(**overrides))


def _signed_in(session, sequence=1):
    return AuthEvent(AuthEventType.SIGNED_IN, session, sequence)


# ---------------------------------------------------------------------------
# Duplicate guard
# ---------------------------------------------------------------------------


def test_guard_accepts_first_event():
    guard = DuplicateEventGuard(5.0, FakeClock())
    assert guard.is_duplicate(make_session(), 1) is False


def test_guard_rejects_repeat_sequence():
    clock = FakeClock()
    guard = DuplicateEventGuard(5.0, clock)
    session = make_session()
    guard.record(session, 3)
    clock.now += 60
    assert guard.is_duplicate(session, 3) is True
    assert guard.is_duplicate(session, 2) is True
    assert guard.is_duplicate(session, 4) is False


def test_guard_window_suppresses_unsequenced_repeats():
    clock = FakeClock()
    guard = DuplicateEventGuard(5.0, clock)
    session = make_session()
    guard.record(session, 0)
    clock.now += 4.9
    assert guard.is_duplicate(session, 0) is True
    clock.now += 0.2
    assert guard.is_duplicate(session, 0) is False


def test_guard_ignores_other_sessions():
    guard = DuplicateEventGuard(5.0, FakeClock())
    guard.record(make_session(session_id="a"), 5)
    assert guard.is_duplicate(make_session(session_id="b"), 1) is False


def test_guard_restarts_sequence_for_new_key():
    clock = FakeClock()
    guard = DuplicateEventGuard(0.0, clock)
    guard.record(make_session(session_id="a"), 9)
    guard.record(make_session(session_id="b"), 1)
    assert guard.is_duplicate(make_session(session_id="b"), 2) is False


# ---------------------------------------------------------------------------
# Sign-in and hydration
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_sign_in_exposes_basic_user_then_full(provider):
    orchestrator = AuthOrchestrator(provider, duplicate_window_s=5.0)
    seen = []
    orchestrator.add_listener(lambda state, user: seen.append((state, user.form if user else None)))

    with patch("tms_core.services.user_service.get_profile", return_value=_profile()):
        await orchestrator.handle_event(_signed_in(make_session()))
        assert orchestrator.state is AuthState.BASIC_AUTHENTICATED
        assert orchestrator.user.role == "Startup"
        assert orchestrator.user.startup_name == "Acme"
        await orchestrator.settled()

    assert orchestrator.state is AuthState.FULLY_AUTHENTICATED
    assert orchestrator.user.is_full
    assert orchestrator.is_processing is False
    assert seen == [
        (AuthState.BASIC_AUTHENTICATED, "basic"),
        (AuthState.FULLY_AUTHENTICATED, "full"),
    ]


@pytest.mark.asyncio
async def test_token_refresh_never_changes_user(provider):
    orchestrator = AuthOrchestrator(provider, duplicate_window_s=5.0)
    changes = []
    orchestrator.add_listener(lambda state, user: changes.append(state))
    session = make_session()

    with patch("tms_core.services.user_service.get_profile", return_value=_profile()) as get_profile:
        await orchestrator.handle_event(_signed_in(session))
        await orchestrator.settled()
        hydrated = orchestrator.user

        for seq in range(2, 7):
            await orchestrator.handle_event(
                AuthEvent(AuthEventType.TOKEN_REFRESHED, session, seq)
            )
        await orchestrator.settled()

    assert changes.count(AuthState.FULLY_AUTHENTICATED) == 1
    assert orchestrator.user is hydrated
    assert get_profile.call_count == 1


@pytest.mark.asyncio
async def test_duplicate_sign_in_is_suppressed(provider):
    orchestrator = AuthOrchestrator(provider, duplicate_window_s=5.0)
    session = make_session()

    with patch("tms_core.services.user_service.get_profile", return_value=_profile()) as get_profile:
        await orchestrator.handle_event(_signed_in(session, 1))
        await orchestrator.settled()
        await orchestrator.handle_event(_signed_in(session, 1))
        await orchestrator.handle_event(
            AuthEvent(AuthEventType.INITIAL_SESSION, session, 2)
        )
        await orchestrator.settled()

    assert get_profile.call_count == 1
    assert orchestrator.state is AuthState.FULLY_AUTHENTICATED


@pytest.mark.asyncio
async def test_sign_in_while_processing_is_skipped(provider):
    orchestrator = AuthOrchestrator(provider, duplicate_window_s=0.0)
    release = asyncio.Event()

    async def slow_fetch(user_id):
        await release.wait()
        return _profile()

    with patch.object(orchestrator, "_fetch_profile", side_effect=slow_fetch) as fetch:
        await orchestrator.handle_event(_signed_in(make_session(), 1))
        assert orchestrator.is_processing is True
        await orchestrator.handle_event(_signed_in(make_session(session_id="sess-2"), 1))
        release.set()
        await orchestrator.settled()

    assert fetch.call_count == 1
    assert orchestrator.session.session_id == "sess-1"


@pytest.mark.asyncio
async def test_unconfirmed_email_signs_out_with_error(provider):
    orchestrator = AuthOrchestrator(provider)

    with patch("tms_core.services.user_service.get_profile") as get_profile:
        await orchestrator.handle_event(_signed_in(make_session(confirmed=False)))

    assert orchestrator.state is AuthState.UNAUTHENTICATED
    assert orchestrator.user is None
    assert "confirm your email" in orchestrator.error
    provider.sign_out.assert_awaited_once()
    get_profile.assert_not_called()


@pytest.mark.asyncio
async def test_incomplete_profile_routes_to_registration(provider):
    orchestrator = AuthOrchestrator(provider)

    with patch(
        "tms_core.services.user_service.get_profile",
        return_value=_profile(is_profile_complete=False),
    ):
        await orchestrator.handle_event(_signed_in(make_session()))
        await orchestrator.settled()

    assert orchestrator.state is AuthState.PROFILE_INCOMPLETE


@pytest.mark.asyncio
async def test_completed_registration_rehydrates_same_session(provider):
    clock = FakeClock()
    orchestrator = AuthOrchestrator(provider, clock=clock)
    session = make_session()

    with patch(
        "tms_core.services.user_service.get_profile",
        return_value=_profile(is_profile_complete=False),
    ):
        await orchestrator.handle_event(_signed_in(session))
        await orchestrator.settled()
    assert orchestrator.state is AuthState.PROFILE_INCOMPLETE

    clock.now += 30
    with patch(
        "tms_core.services.user_service.get_profile", return_value=_profile()
    ) as get_profile:
        await orchestrator.handle_event(AuthEvent(AuthEventType.INITIAL_SESSION, session, 2))
        await orchestrator.settled()

    get_profile.assert_called_once_with("user-1")
    assert orchestrator.state is AuthState.FULLY_AUTHENTICATED
    assert orchestrator.user.is_profile_complete is True


def test_zero_profile_timeout_is_kept(provider):
    orchestrator = AuthOrchestrator(provider, profile_timeout_s=0)
    assert orchestrator._profile_timeout_s == 0


@pytest.mark.asyncio
async def test_missing_profile_is_created_with_startup(provider):
    orchestrator = AuthOrchestrator(provider)
    created = _profile()

    with (
        patch("tms_core.services.user_service.get_profile", side_effect=[None, created]),
        patch("tms_core.services.user_service.create_profile") as create_profile,
        patch("tms_core.services.startup_service.ensure_startup", return_value=True) as ensure,
    ):
        await orchestrator.handle_event(_signed_in(make_session()))
        await orchestrator.settled()

    create_profile.assert_called_once_with(
        user_id="user-1",
        email="founder@acme.io",
        name="Ada Founder",
        role="Startup",
        startup_name="Acme",
    )
    ensure.assert_called_once_with("Acme", "user-1")
    assert orchestrator.state is AuthState.FULLY_AUTHENTICATED


@pytest.mark.asyncio
async def test_startup_creation_failure_does_not_block(provider):
    orchestrator = AuthOrchestrator(provider)

    with (
        patch("tms_core.services.user_service.get_profile", side_effect=[None, _profile()]),
        patch("tms_core.services.user_service.create_profile"),
        patch("tms_core.services.startup_service.ensure_startup", side_effect=RuntimeError("rls")),
    ):
        await orchestrator.handle_event(_signed_in(make_session()))
        await orchestrator.settled()

    assert orchestrator.state is AuthState.FULLY_AUTHENTICATED


@pytest.mark.asyncio
async def test_missing_profile_without_metadata_keeps_basic_user(provider):
    orchestrator = AuthOrchestrator(provider)
    session = make_session(metadata={})

    with (
        patch("tms_core.services.user_service.get_profile", return_value=None),
        patch("tms_core.services.user_service.create_profile") as create_profile,
    ):
        await orchestrator.handle_event(_signed_in(session))
        await orchestrator.settled()

    create_profile.assert_not_called()
    assert orchestrator.state is AuthState.BASIC_AUTHENTICATED
    assert orchestrator.user.role is None
    assert orchestrator.user.name == "Unknown"
    assert orchestrator.is_processing is False


@pytest.mark.asyncio
async def test_hydration_failure_keeps_basic_user(provider):
    orchestrator = AuthOrchestrator(provider)

    with patch("tms_core.services.user_service.get_profile", side_effect=RuntimeError("boom")):
        await orchestrator.handle_event(_signed_in(make_session()))
        await orchestrator.settled()

    assert orchestrator.state is AuthState.BASIC_AUTHENTICATED
    assert orchestrator.is_processing is False


@pytest.mark.asyncio
async def test_profile_fetch_timeout_keeps_basic_user(provider):
    orchestrator = AuthOrchestrator(provider, profile_timeout_s=0.01)

    def stuck(user_id):
        import time

        time.sleep(0.2)
        return _profile()

    with patch("tms_core.services.user_service.get_profile", side_effect=stuck):
        await orchestrator.handle_event(_signed_in(make_session()))
        await orchestrator.settled()

    assert orchestrator.state is AuthState.BASIC_AUTHENTICATED


@pytest.mark.asyncio
async def test_sign_out_during_hydration_drops_result(provider):
    orchestrator = AuthOrchestrator(provider)
    release = asyncio.Event()

    async def slow_fetch(user_id):
        await release.wait()
        return _profile()

    with patch.object(orchestrator, "_fetch_profile", side_effect=slow_fetch):
        await orchestrator.handle_event(_signed_in(make_session()))
        await orchestrator.handle_event(AuthEvent(AuthEventType.SIGNED_OUT))
        release.set()
        await orchestrator.settled()

    assert orchestrator.state is AuthState.UNAUTHENTICATED
    assert orchestrator.user is None


@pytest.mark.asyncio
async def test_sign_in_after_sign_out_is_accepted(provider):
    orchestrator = AuthOrchestrator(provider, duplicate_window_s=5.0)
    session = make_session()

    with patch("tms_core.services.user_service.get_profile", return_value=_profile()) as get_profile:
        await orchestrator.handle_event(_signed_in(session, 1))
        await orchestrator.settled()
        await orchestrator.handle_event(AuthEvent(AuthEventType.SIGNED_OUT))
        await orchestrator.handle_event(_signed_in(session, 1))
        await orchestrator.settled()

    assert get_profile.call_count == 2
    assert orchestrator.state is AuthState.FULLY_AUTHENTICATED


@pytest.mark.asyncio
async def test_ignored_events_do_not_transition(provider):
    orchestrator = AuthOrchestrator(provider)
    for event_type in (AuthEventType.USER_UPDATED, AuthEventType.PASSWORD_RECOVERY):
        await orchestrator.handle_event(AuthEvent(event_type, make_session()))
    assert orchestrator.state is AuthState.UNAUTHENTICATED


@pytest.mark.asyncio
async def test_reset_signs_out_and_clears(provider):
    orchestrator = AuthOrchestrator(provider)

    with patch("tms_core.services.user_service.get_profile", return_value=_profile()):
        await orchestrator.handle_event(_signed_in(make_session()))
        await orchestrator.settled()
    await orchestrator.reset()

    provider.sign_out.assert_awaited_once()
    assert orchestrator.state is AuthState.UNAUTHENTICATED
    assert orchestrator.error is None


@pytest.mark.asyncio
async def test_listener_errors_are_contained(provider):
    orchestrator = AuthOrchestrator(provider)

    def broken(state, user):
        raise ValueError("listener bug")

    orchestrator.add_listener(broken)
    with patch("tms_core.services.user_service.get_profile", return_value=_profile()):
        await orchestrator.handle_event(_signed_in(make_session()))
        await orchestrator.settled()

    assert orchestrator.state is AuthState.FULLY_AUTHENTICATED
