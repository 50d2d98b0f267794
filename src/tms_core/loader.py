"""
loader.py — role-aware bulk fetch of the session's core collections.

Orchestrates:
  1. Fan-out: one query per collection, chosen by role, all run concurrently
  2. Fan-in: each failed query degrades its collection to [] (logged)
  3. Global timeout: the whole batch is abandoned, every collection is
     emptied, and the load still counts as done so callers stop waiting
  4. Post-processing by role:
       Investor — merge startups from approved addition requests (by name)
       Startup  — select the user's own startup once, then refresh it in place
  5. Advisor branding lookup for users who entered an advisor code

A load runs once per session; later calls are no-ops unless force_refresh
is set. Only the loader replaces collections wholesale; mutations patch
single entities through `DataStore`.

Usage:
    loader = DataLoader()
    await loader.load(user)                      # fetches
    await loader.load(user)                      # no remote calls
    await loader.load(user, force_refresh=True)  # fetches again
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, fields
from functools import partial
from typing import Any

from tms_shared.config import settings
from tms_shared.constants import PRIVILEGED_STARTUP_ROLES, ViewMode
from tms_shared.models.offers import InvestmentOffer
from tms_shared.models.requests import (
    StartupAdditionRequest,
    ValidationRequest,
    VerificationRequest,
)
from tms_shared.models.startups import NewInvestment, Startup
from tms_shared.models.users import AdvisorBranding, AuthenticatedUser, UserProfile

from tms_core.errors import DataLoadTimeout, TrackMyStartupError
from tms_core.services import (
    investment_service,
    offer_service,
    request_service,
    startup_service,
    user_service,
)
from tms_core.utils.cache import TTLCache, advisor_branding_cache
from tms_core.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class DataCollections:
    startups: list[Startup] = field(default_factory=list)
    new_investments: list[NewInvestment] = field(default_factory=list)
    addition_requests: list[StartupAdditionRequest] = field(default_factory=list)
    users: list[UserProfile] = field(default_factory=list)
    verification_requests: list[VerificationRequest] = field(default_factory=list)
    validation_requests: list[ValidationRequest] = field(default_factory=list)
    investment_offers: list[InvestmentOffer] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {f.name: len(getattr(self, f.name)) for f in fields(self)}


COLLECTION_NAMES: tuple[str, ...] = tuple(f.name for f in fields(DataCollections))


class DataStore:
    """The cached collections of one session."""

    def __init__(self) -> None:
        self.collections = DataCollections()

    def replace_all(self, collections: DataCollections) -> None:
        self.collections = collections

    def clear(self) -> None:
        self.collections = DataCollections()

    def items(self, name: str) -> list[Any]:
        return getattr(self.collections, name)

    def find(self, name: str, entity_id: Any) -> Any | None:
        return next((e for e in self.items(name) if e.id == entity_id), None)

    def replace(self, name: str, entity: Any) -> bool:
        """Swap in *entity* for the cached one with the same id, if any."""
        items = self.items(name)
        for i, existing in enumerate(items):
            if existing.id == entity.id:
                items[i] = entity
                return True
        return False

    def upsert(self, name: str, entity: Any) -> None:
        """Replace the entity with the same id, or add it to the front."""
        if not self.replace(name, entity):
            self.items(name).insert(0, entity)

    def remove(self, name: str, entity_id: Any) -> None:
        setattr(
            self.collections,
            name,
            [e for e in self.items(name) if e.id != entity_id],
        )


@dataclass
class Navigation:
    """Which view the session is on and which startup it has open."""

    view_mode: ViewMode = "dashboard"
    selected_startup: Startup | None = None
    is_view_only: bool = False
    current_tab: str | None = None
    auto_selected: bool = False

    def reset(self) -> None:
        self.view_mode = "dashboard"
        self.selected_startup = None
        self.is_view_only = False
        self.current_tab = None
        self.auto_selected = False


def merge_by_name(*groups: Iterable[Startup]) -> list[Startup]:
    """Merge startup lists keyed by name; later entries overwrite earlier ones."""
    by_name: dict[str, Startup] = {}
    for group in groups:
        for startup in group:
            if startup.name:
                by_name[startup.name] = startup
    return list(by_name.values())


def find_own_startup(startups: list[Startup], startup_name: str | None) -> Startup | None:
    """Match by name; if that fails and exactly one startup is present, use it."""
    if startup_name:
        match = next((s for s in startups if s.name == startup_name), None)
        if match is not None:
            return match
    if len(startups) == 1:
        return startups[0]
    return None


def _no_rows() -> list[Any]:
    return []


class DataLoader:
    def __init__(
        self,
        navigation: Navigation | None = None,
        *,
        timeout_s: float | None = None,
        branding_cache: TTLCache = advisor_branding_cache,
    ) -> None:
        self.store = DataStore()
        self.navigation = navigation or Navigation()
        self.has_initial_data_loaded = False
        self.last_error: TrackMyStartupError | None = None
        self.advisor_branding: AdvisorBranding | None = None
        self.loaded_for: AuthenticatedUser | None = None

        self._timeout_s = settings.data_load_timeout_s if timeout_s is None else timeout_s
        self._branding_cache = branding_cache
        self._lock = asyncio.Lock()
        self._generation = 0

    @property
    def collections(self) -> DataCollections:
        return self.store.collections

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def load(
        self, user: AuthenticatedUser, *, force_refresh: bool = False
    ) -> DataCollections:
        if self.has_initial_data_loaded and not force_refresh:
            log.debug("load_skipped", user_id=user.id)
            return self.collections

        async with self._lock:
            if self.has_initial_data_loaded and not force_refresh:
                return self.collections
            await self._load(user, force_refresh)
            return self.collections

    def reset(self) -> None:
        """Forget everything loaded for the session; in-flight loads are dropped."""
        for code in {
            self.loaded_for.investment_advisor_code_entered if self.loaded_for else None,
            self.advisor_branding.advisor_code if self.advisor_branding else None,
        }:
            if code:
                self._branding_cache.discard(code)
        self._generation += 1
        self.store.clear()
        self.navigation.reset()
        self.has_initial_data_loaded = False
        self.last_error = None
        self.advisor_branding = None
        self.loaded_for = None

    # ------------------------------------------------------------------
    # Load steps
    # ------------------------------------------------------------------

    async def _load(self, user: AuthenticatedUser, force_refresh: bool) -> None:
        generation = self._generation
        load_log = log.bind(user_id=user.id, role=user.role, force_refresh=force_refresh)
        load_log.info("load_start")
        t0 = time.monotonic()

        try:
            results = await asyncio.wait_for(
                self._fan_out(user, load_log), timeout=self._timeout_s
            )
        except asyncio.TimeoutError:
            if generation != self._generation:
                return
            load_log.error("load_timeout", timeout_s=self._timeout_s)
            self.store.clear()
            self.last_error = DataLoadTimeout(
                f"Data load exceeded {self._timeout_s:g} seconds"
            )
            self.has_initial_data_loaded = True
            self.loaded_for = user
            return

        collections = DataCollections(**results)
        if user.role == "Investor":
            collections.startups = await self._augment_investor_portfolio(
                user, collections, load_log
            )

        if generation != self._generation:
            load_log.info("stale_load_dropped")
            return

        self.store.replace_all(collections)
        if user.role == "Startup":
            await self._select_own_startup(user, generation, load_log)

        self.last_error = None
        self.has_initial_data_loaded = True
        self.loaded_for = user

        await self._load_advisor_branding(user, load_log)

        load_log.info(
            "load_complete",
            duration_ms=int((time.monotonic() - t0) * 1000),
            **self.collections.counts(),
        )

    def _queries_for(self, user: AuthenticatedUser) -> dict[str, Callable[[], list[Any]]]:
        role = user.role

        if role in PRIVILEGED_STARTUP_ROLES:
            startups: Callable[[], list[Any]] = startup_service.list_all_startups
        elif role == "CA":
            startups = partial(startup_service.list_assigned_startups, "CA", user.ca_code)
        elif role == "CS":
            startups = partial(startup_service.list_assigned_startups, "CS", user.cs_code)
        else:
            startups = partial(startup_service.list_user_startups, user.id)

        if role == "Investor":
            offers: Callable[[], list[Any]] = partial(
                offer_service.list_offers_for_investor, user.email
            )
        elif role in PRIVILEGED_STARTUP_ROLES:
            offers = offer_service.list_all_offers
        else:
            offers = _no_rows

        return {
            "startups": startups,
            "new_investments": investment_service.list_new_investments,
            "addition_requests": request_service.list_addition_requests,
            "users": user_service.list_users,
            "verification_requests": request_service.list_verification_requests,
            "validation_requests": request_service.list_validation_requests,
            "investment_offers": offers,
        }

    async def _fan_out(self, user: AuthenticatedUser, load_log) -> dict[str, list[Any]]:
        queries = self._queries_for(user)
        settled = await asyncio.gather(
            *(asyncio.to_thread(query) for query in queries.values()),
            return_exceptions=True,
        )

        results: dict[str, list[Any]] = {}
        for name, outcome in zip(queries, settled):
            if isinstance(outcome, Exception):
                load_log.warning("collection_load_failed", collection=name, error=str(outcome))
                results[name] = []
            else:
                results[name] = list(outcome or [])
        return results

    async def _augment_investor_portfolio(
        self,
        user: AuthenticatedUser,
        collections: DataCollections,
        load_log,
    ) -> list[Startup]:
        code = user.investor_code
        if not code:
            return collections.startups

        approved_names = [
            r.name
            for r in collections.addition_requests
            if r.status == "approved" and r.investor_code == code and r.name
        ]
        if not approved_names:
            return collections.startups

        try:
            canonical = await asyncio.to_thread(
                startup_service.get_startups_by_names, approved_names
            )
        except Exception as exc:
            load_log.warning("portfolio_augment_failed", error=str(exc))
            return collections.startups

        merged = merge_by_name(collections.startups, canonical)
        load_log.info("portfolio_augmented", approved=len(approved_names), total=len(merged))
        return merged

    async def _select_own_startup(
        self, user: AuthenticatedUser, generation: int, load_log
    ) -> None:
        nav = self.navigation
        startups = self.collections.startups

        if nav.auto_selected:
            if nav.selected_startup is not None:
                fresh = next(
                    (s for s in startups if s.id == nav.selected_startup.id), None
                )
                if fresh is not None:
                    nav.selected_startup = fresh
        else:
            own = find_own_startup(startups, user.startup_name)
            if own is None:
                load_log.warning(
                    "own_startup_not_found",
                    startup_name=user.startup_name,
                    available=len(startups),
                )
                return
            nav.selected_startup = own
            nav.view_mode = "startupHealth"
            nav.is_view_only = False
            nav.auto_selected = True
            load_log.info("own_startup_selected", startup_id=own.id)

        selected = nav.selected_startup
        if selected is None:
            return
        try:
            offers = await asyncio.to_thread(offer_service.list_offers_for_startup, selected.id)
        except Exception as exc:
            load_log.warning("startup_offers_load_failed", error=str(exc))
            return
        if generation == self._generation:
            self.collections.investment_offers = offers

    async def _load_advisor_branding(self, user: AuthenticatedUser, load_log) -> None:
        code = user.investment_advisor_code_entered
        if not code:
            self.advisor_branding = None
            return

        cached = self._branding_cache.get(code)
        if cached is not None:
            self.advisor_branding = cached
            return

        try:
            branding = await asyncio.to_thread(user_service.get_advisor_branding, code)
        except Exception as exc:
            load_log.warning("advisor_branding_failed", advisor_code=code, error=str(exc))
            self.advisor_branding = None
            return

        if branding is not None:
            self._branding_cache.set(code, branding)
        self.advisor_branding = branding
