"""
offers.py — investment offer status machine.

    pending ──▶ approved ──▶ accepted ──▶ completed
       │  ╲
       │   ▶ pending_investor_advisor_approval ──▶ pending_startup_advisor_approval
       │              │                                   │
       ▼              ▼                                   ▼
    rejected       approved / rejected                 approved / rejected

No status ever returns to `pending`; `rejected` and `completed` are terminal.
Amount and equity may only change, and the offer may only be cancelled,
while it is `pending`.
"""

from __future__ import annotations

from typing import Final

from tms_shared.models.offers import InvestmentOffer

from tms_core.errors import MutationError, OfferLockedError, OfferTransitionError

TRANSITIONS: Final[dict[str, frozenset[str]]] = {
    "pending": frozenset(
        {
            "approved",
            "rejected",
            "pending_investor_advisor_approval",
            "pending_startup_advisor_approval",
        }
    ),
    "pending_investor_advisor_approval": frozenset(
        {"pending_startup_advisor_approval", "approved", "rejected"}
    ),
    "pending_startup_advisor_approval": frozenset({"approved", "rejected"}),
    "approved": frozenset({"accepted"}),
    "accepted": frozenset({"completed"}),
    "rejected": frozenset(),
    "completed": frozenset(),
}

TERMINAL_STATUSES: Final[frozenset[str]] = frozenset(
    status for status, targets in TRANSITIONS.items() if not targets
)

MAX_EQUITY_PERCENTAGE: Final[float] = 100.0


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def ensure_transition(offer: InvestmentOffer, target: str) -> None:
    if not can_transition(offer.status, target):
        raise OfferTransitionError(
            f"Offer {offer.id} cannot move from '{offer.status}' to '{target}'.",
            details={"offer_id": offer.id, "from": offer.status, "to": target},
        )


def ensure_editable(offer: InvestmentOffer) -> None:
    if offer.status != "pending":
        raise OfferLockedError(
            f"Offer {offer.id} can no longer be edited (status '{offer.status}').",
            details={"offer_id": offer.id, "status": offer.status},
        )


def ensure_cancellable(offer: InvestmentOffer) -> None:
    if offer.status != "pending":
        raise OfferLockedError(
            f"Offer {offer.id} can no longer be cancelled (status '{offer.status}').",
            details={"offer_id": offer.id, "status": offer.status},
        )


def validate_terms(offer_amount: float, equity_percentage: float) -> None:
    if offer_amount <= 0:
        raise MutationError("Offer amount must be greater than zero.")
    if not 0 < equity_percentage <= MAX_EQUITY_PERCENTAGE:
        raise MutationError("Equity percentage must be between 0 and 100.")


def approval_target(
    current: str,
    *,
    investor_advisor_code: str | None = None,
    startup_advisor_code: str | None = None,
) -> str:
    """
    Return the status an approval moves an offer to.

    Offers whose investor has an advisor wait for that advisor first, then
    for the startup's advisor if it has one; everything else goes straight
    to `approved`.
    """
    if current == "pending":
        if investor_advisor_code:
            return "pending_investor_advisor_approval"
        if startup_advisor_code:
            return "pending_startup_advisor_approval"
        return "approved"
    if current == "pending_investor_advisor_approval":
        if startup_advisor_code:
            return "pending_startup_advisor_approval"
        return "approved"
    if current == "pending_startup_advisor_approval":
        return "approved"
    raise OfferTransitionError(
        f"An offer in status '{current}' is not awaiting approval.",
        details={"from": current},
    )
