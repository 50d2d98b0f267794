"""
mutations.py — dashboard intents that write to Supabase and patch the cache.

Every operation performs its remote write first. The row the write returns
is the authoritative entity and replaces the cached one wholesale; on any
failure a `MutationError` propagates and the cache is left untouched.
Offer status changes go through the state machine in `tms_core.offers`.

Each intent takes the acting user and checks it against the entity before
writing: investors touch only their own offers, a startup only its own
startup, CA/CS only startups assigned to their code, and an investment
advisor only the approval step that waits on their code. Admins may act on
anything. A refusal raises `PermissionDeniedError`.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from tms_shared.constants import COMPLIANCE_STATUSES
from tms_shared.models.offers import InvestmentOffer
from tms_shared.models.requests import (
    StartupAdditionRequest,
    ValidationRequest,
    VerificationRequest,
)
from tms_shared.models.startups import Founder, FundraisingDetails, NewInvestment, Startup
from tms_shared.models.users import AuthenticatedUser

from tms_core import offers
from tms_core.errors import EntityNotFoundError, MutationError, PermissionDeniedError
from tms_core.loader import DataLoader
from tms_core.services import (
    investment_service,
    offer_service,
    request_service,
    startup_service,
)
from tms_core.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


async def _remote(action: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    try:
        return await asyncio.to_thread(fn, *args, **kwargs)
    except MutationError:
        raise
    except Exception as exc:
        log.error("mutation_failed", action=action, error=str(exc))
        raise MutationError(f"Failed to {action}: {exc}") from exc


def _replace_startup(loader: DataLoader, startup: Startup) -> None:
    loader.store.replace("startups", startup)
    selected = loader.navigation.selected_startup
    if selected is not None and selected.id == startup.id:
        loader.navigation.selected_startup = startup


async def _require_offer(offer_id: int) -> InvestmentOffer:
    offer = await _remote("load offer", offer_service.get_offer, offer_id)
    if offer is None:
        raise EntityNotFoundError(
            f"Investment offer {offer_id} not found", details={"offer_id": offer_id}
        )
    return offer


async def _fresh_startup(startup_id: int, fallback: Startup | None = None) -> Startup:
    startup = await _remote("load startup", startup_service.get_startup, startup_id)
    if startup is None:
        if fallback is not None:
            return fallback
        raise EntityNotFoundError(
            f"Startup {startup_id} not found", details={"startup_id": startup_id}
        )
    return startup


async def _cached_or_fresh_startup(loader: DataLoader, startup_id: int) -> Startup:
    cached = loader.store.find("startups", startup_id)
    if cached is not None:
        return cached
    return await _fresh_startup(startup_id)


# ---------------------------------------------------------------------------
# Ownership
# ---------------------------------------------------------------------------


def _denied(user: AuthenticatedUser, action: str, **details: Any) -> PermissionDeniedError:
    log.warning("mutation_denied", action=action, user_id=user.id, role=user.role, **details)
    return PermissionDeniedError(f"You are not allowed to {action}.", details=details)


def _same_email(a: str | None, b: str | None) -> bool:
    return bool(a) and bool(b) and a.casefold() == b.casefold()


def owns_startup(user: AuthenticatedUser, startup: Startup) -> bool:
    """A startup row belongs to the user who created it; older rows match by name."""
    if startup.user_id:
        return startup.user_id == user.id
    return bool(user.startup_name) and startup.name == user.startup_name


def can_manage_startup(user: AuthenticatedUser, startup: Startup) -> bool:
    if user.role == "Admin":
        return True
    if user.role == "Startup":
        return owns_startup(user, startup)
    if user.role == "CA":
        return bool(user.ca_code) and startup.ca_service_code == user.ca_code
    if user.role == "CS":
        return bool(user.cs_code) and startup.cs_service_code == user.cs_code
    return False


def _ensure_manages(user: AuthenticatedUser, startup: Startup, action: str) -> None:
    if not can_manage_startup(user, startup):
        raise _denied(user, action, startup_id=startup.id)


def _ensure_offer_investor(user: AuthenticatedUser, offer: InvestmentOffer, action: str) -> None:
    if not _same_email(offer.investor_email, user.email):
        raise _denied(user, action, offer_id=offer.id)


async def _offer_startup(loader: DataLoader, offer: InvestmentOffer) -> Startup | None:
    if offer.startup_id is None:
        return None
    startup = loader.store.find("startups", offer.startup_id)
    if startup is None:
        startup = await _remote("load startup", startup_service.get_startup, offer.startup_id)
    return startup


# ---------------------------------------------------------------------------
# Investment offers
# ---------------------------------------------------------------------------


async def submit_offer(
    loader: DataLoader,
    user: AuthenticatedUser,
    *,
    startup_id: int,
    startup_name: str,
    offer_amount: float,
    equity_percentage: float,
) -> InvestmentOffer:
    offers.validate_terms(offer_amount, equity_percentage)

    if await _remote(
        "check existing offers", offer_service.has_pending_offer, user.email, startup_id
    ):
        raise MutationError(
            f"You already have a pending offer for {startup_name}.",
            details={"startup_id": startup_id},
        )

    draft = InvestmentOffer(
        id=0,
        investor_email=user.email,
        investor_name=user.name,
        startup_name=startup_name,
        startup_id=startup_id,
        offer_amount=offer_amount,
        equity_percentage=equity_percentage,
        status="pending",
    )
    created = await _remote("submit offer", offer_service.create_offer, draft)
    loader.store.upsert("investment_offers", created)
    log.info("offer_submitted", offer_id=created.id, startup_id=startup_id)
    return created


async def update_offer(
    loader: DataLoader,
    user: AuthenticatedUser,
    offer_id: int,
    offer_amount: float,
    equity_percentage: float,
) -> InvestmentOffer:
    current = await _require_offer(offer_id)
    _ensure_offer_investor(user, current, "edit this offer")
    offers.ensure_editable(current)
    offers.validate_terms(offer_amount, equity_percentage)

    updated = await _remote(
        "update offer",
        offer_service.update_offer_terms,
        offer_id,
        offer_amount,
        equity_percentage,
    )
    loader.store.upsert("investment_offers", updated)
    log.info("offer_updated", offer_id=offer_id)
    return updated


async def cancel_offer(loader: DataLoader, user: AuthenticatedUser, offer_id: int) -> None:
    current = await _require_offer(offer_id)
    _ensure_offer_investor(user, current, "cancel this offer")
    offers.ensure_cancellable(current)

    await _remote("cancel offer", offer_service.delete_offer, offer_id)
    loader.store.remove("investment_offers", offer_id)
    log.info("offer_cancelled", offer_id=offer_id)


async def process_offer(
    loader: DataLoader, user: AuthenticatedUser, offer_id: int, status: str
) -> InvestmentOffer:
    """Apply a status decided by an admin or the startup (approve, reject, accept, complete)."""
    current = await _require_offer(offer_id)
    if user.role != "Admin":
        startup = await _offer_startup(loader, current)
        if startup is None or not owns_startup(user, startup):
            raise _denied(user, "decide on this offer", offer_id=offer_id)
    offers.ensure_transition(current, status)

    updated = await _remote(
        "process offer", offer_service.update_offer_status, offer_id, status
    )
    loader.store.upsert("investment_offers", updated)
    log.info("offer_processed", offer_id=offer_id, status_from=current.status, status_to=status)
    return updated


async def approve_offer(
    loader: DataLoader, user: AuthenticatedUser, offer_id: int
) -> InvestmentOffer:
    """Move an offer one step along its approval chain.

    The investor's advisor (if the investor entered an advisor code) signs
    off first, then the startup's advisor (if the startup has one); after
    that the offer is `approved`. An advisor may only sign off the step
    that is waiting on their own code.
    """
    current = await _require_offer(offer_id)

    investor = next(
        (u for u in loader.collections.users if _same_email(u.email, current.investor_email)),
        None,
    )
    startup = await _offer_startup(loader, current)
    investor_advisor = investor.investment_advisor_code_entered if investor else None
    startup_advisor = startup.investment_advisor_code if startup else None

    if user.role != "Admin":
        awaiting = {
            "pending_investor_advisor_approval": investor_advisor,
            "pending_startup_advisor_approval": startup_advisor,
        }.get(current.status)
        if not awaiting or awaiting != user.investment_advisor_code:
            raise _denied(user, "approve this offer", offer_id=offer_id)

    target = offers.approval_target(
        current.status,
        investor_advisor_code=investor_advisor,
        startup_advisor_code=startup_advisor,
    )
    offers.ensure_transition(current, target)

    updated = await _remote(
        "approve offer", offer_service.update_offer_status, offer_id, target
    )
    loader.store.upsert("investment_offers", updated)
    log.info("offer_approval_step", offer_id=offer_id, status_from=current.status, status_to=target)
    return updated


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


async def process_verification(
    loader: DataLoader, request_id: int, decision: str
) -> Startup:
    """Approve or reject a verification request; the request is removed either way."""
    if decision not in ("approved", "rejected"):
        raise MutationError(f"Unknown verification decision '{decision}'.")

    request: VerificationRequest | None = await _remote(
        "load verification request", request_service.get_verification_request, request_id
    )
    if request is None:
        raise EntityNotFoundError(
            f"Verification request {request_id} not found",
            details={"request_id": request_id},
        )

    status = "Compliant" if decision == "approved" else "Non-Compliant"
    written = await _remote(
        "process verification", startup_service.update_compliance, request.startup_id, status
    )
    await _remote(
        "remove verification request", request_service.delete_verification_request, request_id
    )
    startup = await _fresh_startup(request.startup_id, fallback=written)

    loader.store.remove("verification_requests", request_id)
    _replace_startup(loader, startup)
    log.info("verification_processed", request_id=request_id, decision=decision)
    return startup


async def process_validation(
    loader: DataLoader, request_id: int, decision: str, notes: str | None = None
) -> ValidationRequest:
    if decision not in ("approved", "rejected"):
        raise MutationError(f"Unknown validation decision '{decision}'.")

    updated = await _remote(
        "process validation request",
        request_service.update_validation_request,
        request_id,
        decision,
        notes,
    )
    loader.store.upsert("validation_requests", updated)
    log.info("validation_processed", request_id=request_id, decision=decision)
    return updated


async def accept_startup_request(
    loader: DataLoader, user: AuthenticatedUser, request_id: int
) -> Startup:
    """Link the startup named in an addition request into the investor's portfolio."""
    request = await _remote(
        "load startup request", request_service.get_addition_request, request_id
    )
    if request is None:
        raise EntityNotFoundError(
            f"Startup addition request {request_id} not found",
            details={"request_id": request_id},
        )
    if not request.investor_code or request.investor_code != user.investor_code:
        raise _denied(user, "accept this startup request", request_id=request_id)

    startup = await _remote(
        "find startup", startup_service.find_startup_by_name, request.name
    )
    if startup is None:
        raise EntityNotFoundError(
            f"Startup '{request.name}' does not exist.",
            details={"request_id": request_id, "startup_name": request.name},
        )

    approved = await _remote(
        "accept startup request",
        request_service.set_addition_request_status,
        request_id,
        "approved",
    )
    loader.store.upsert("addition_requests", approved)
    loader.store.upsert("startups", startup)
    log.info("startup_request_accepted", request_id=request_id, startup_id=startup.id)
    return startup


async def create_addition_request(
    loader: DataLoader,
    user: AuthenticatedUser,
    startup: Startup,
    *,
    investor_code: str | None,
    amount: float,
    equity_allocated: float,
) -> StartupAdditionRequest | None:
    """Ask the investor owning *investor_code* to add *startup* to their portfolio.

    Recording an investment without an investor code creates nothing.
    """
    _ensure_manages(user, startup, "record investments for this startup")
    if not investor_code:
        log.info("addition_request_skipped_no_investor_code", startup_id=startup.id)
        return None

    draft = StartupAdditionRequest(
        id=0,
        name=startup.name,
        investment_type=startup.investment_type,
        investment_value=amount,
        equity_allocation=equity_allocated,
        sector=startup.sector,
        total_funding=startup.total_funding + amount,
        total_revenue=startup.total_revenue,
        registration_date=startup.registration_date,
        investor_code=investor_code,
        status="pending",
    )
    created = await _remote(
        "create investor request", request_service.create_addition_request, draft
    )
    loader.store.upsert("addition_requests", created)
    log.info("addition_request_created", request_id=created.id, startup_id=startup.id)
    return created


# ---------------------------------------------------------------------------
# Startups
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FundraisingActivation:
    listing: NewInvestment
    verification_request: VerificationRequest | None = None


async def activate_fundraising(
    loader: DataLoader,
    user: AuthenticatedUser,
    startup_id: int,
    details: FundraisingDetails,
) -> FundraisingActivation:
    """List a startup for fundraising; with `validation_requested`, also ask an admin to verify it."""
    startup = await _cached_or_fresh_startup(loader, startup_id)
    _ensure_manages(user, startup, "list this startup for fundraising")

    listing = await _remote(
        "activate fundraising", investment_service.create_fundraising_listing, startup, details
    )
    loader.store.upsert("new_investments", listing)

    request: VerificationRequest | None = None
    if details.validation_requested:
        request = await _remote(
            "request verification",
            request_service.create_verification_request,
            startup.id,
            startup.name,
        )
        loader.store.upsert("verification_requests", request)

    log.info(
        "fundraising_activated",
        startup_id=startup.id,
        verification_requested=request is not None,
    )
    return FundraisingActivation(listing, request)


async def update_compliance(
    loader: DataLoader, user: AuthenticatedUser, startup_id: int, status: str
) -> Startup:
    if status not in COMPLIANCE_STATUSES:
        raise MutationError(
            f"Unknown compliance status '{status}'.", details={"status": status}
        )
    if user.role != "Admin":
        _ensure_manages(
            user,
            await _cached_or_fresh_startup(loader, startup_id),
            "change compliance for this startup",
        )

    written = await _remote(
        "update compliance status", startup_service.update_compliance, startup_id, status
    )
    startup = await _fresh_startup(startup_id, fallback=written)
    _replace_startup(loader, startup)
    log.info("compliance_updated", startup_id=startup_id, status=status)
    return startup


async def update_founders(
    loader: DataLoader, user: AuthenticatedUser, startup_id: int, founders: list[Founder]
) -> Startup:
    if user.role != "Admin":
        _ensure_manages(
            user,
            await _cached_or_fresh_startup(loader, startup_id),
            "change founders of this startup",
        )

    await _remote(
        "update founders", startup_service.replace_founders, startup_id, founders
    )
    startup = await _fresh_startup(startup_id)
    _replace_startup(loader, startup)
    log.info("founders_updated", startup_id=startup_id, count=len(founders))
    return startup
