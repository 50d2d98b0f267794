"""
router.py — picks exactly one view for the current session.

Priority:
  1. not authenticated                     → LANDING
  2. profile hydrated but incomplete       → COMPLETE_REGISTRATION
  3. authenticated, role not yet known     → LOADING (never guess a role)
  4. view_mode "startupHealth" + selection → STARTUP_HEALTH for any role
  5. otherwise dispatch on role through ROLE_VIEWS; a Startup user gets the
     startup matching their startup name, or the only one loaded

Usage:
    view = route(RouteInput(authenticated=True, user=user, startups=startups,
                            selected_startup=s, view_mode="startupHealth"))
    view.kind, view.is_view_only
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from tms_shared.constants import FACILITATOR_ROLE, VIEW_ONLY_ROLES, ViewMode
from tms_shared.models.startups import Startup
from tms_shared.models.users import AuthenticatedUser

from tms_core.loader import find_own_startup


class ViewKind(str, Enum):
    LANDING = "landing"
    COMPLETE_REGISTRATION = "complete_registration"
    LOADING = "loading"
    STARTUP_HEALTH = "startup_health"
    ADMIN = "admin"
    CA = "ca"
    CS = "cs"
    FACILITATOR = "facilitator"
    INVESTMENT_ADVISOR = "investment_advisor"
    INVESTOR = "investor"
    STARTUP = "startup"
    NO_STARTUP_FOUND = "no_startup_found"


@dataclass(frozen=True)
class RouteInput:
    authenticated: bool
    user: AuthenticatedUser | None = None
    startups: tuple[Startup, ...] = ()
    selected_startup: Startup | None = None
    view_mode: ViewMode = "dashboard"
    profile_incomplete: bool = False


@dataclass(frozen=True)
class View:
    kind: ViewKind
    role: str | None = None
    startup: Startup | None = None
    is_view_only: bool = False


def is_view_only_role(role: str | None) -> bool:
    return role in VIEW_ONLY_ROLES


def _dashboard(kind: ViewKind) -> Callable[[RouteInput], View]:
    def build(inp: RouteInput) -> View:
        return View(kind=kind, role=inp.user.role if inp.user else None)

    return build


def _startup_dashboard(inp: RouteInput) -> View:
    startup = find_own_startup(
        list(inp.startups), inp.user.startup_name if inp.user else None
    )
    if startup is None:
        return View(kind=ViewKind.NO_STARTUP_FOUND, role="Startup")
    return View(kind=ViewKind.STARTUP, role="Startup", startup=startup, is_view_only=False)


ROLE_VIEWS: dict[str, Callable[[RouteInput], View]] = {
    "Admin": _dashboard(ViewKind.ADMIN),
    "CA": _dashboard(ViewKind.CA),
    "CS": _dashboard(ViewKind.CS),
    FACILITATOR_ROLE: _dashboard(ViewKind.FACILITATOR),
    "Investment Advisor": _dashboard(ViewKind.INVESTMENT_ADVISOR),
    "Investor": _dashboard(ViewKind.INVESTOR),
    "Startup": _startup_dashboard,
}


def route(inp: RouteInput) -> View:
    if not inp.authenticated:
        return View(kind=ViewKind.LANDING)

    if inp.profile_incomplete:
        return View(kind=ViewKind.COMPLETE_REGISTRATION, role=inp.user.role if inp.user else None)

    role = inp.user.role if inp.user else None
    if role is None:
        return View(kind=ViewKind.LOADING)

    if inp.view_mode == "startupHealth" and inp.selected_startup is not None:
        return View(
            kind=ViewKind.STARTUP_HEALTH,
            role=role,
            startup=inp.selected_startup,
            is_view_only=is_view_only_role(role),
        )

    return ROLE_VIEWS[role](inp)
