"""Exception taxonomy for the session core.

Only `AuthError` and `MutationError` (and their subclasses) ever reach a
caller. `PermissionDeniedError` means the caller is signed in but the
entity belongs to someone else. Hydration and bulk-load failures are recorded and logged where they
happen.
"""

from __future__ import annotations

from typing import Any


class TrackMyStartupError(Exception):
    """Base class for all application errors."""

    code = "error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class AuthError(TrackMyStartupError):
    code = "auth_error"


class PermissionDeniedError(AuthError):
    code = "forbidden"


class EmailNotConfirmedError(AuthError):
    code = "email_not_confirmed"

    def __init__(self) -> None:
        super().__init__(
            "Please confirm your email before logging in. "
            "Check your inbox for the confirmation link."
        )


class ProfileHydrationError(TrackMyStartupError):
    code = "profile_hydration_failed"


class DataLoadTimeout(TrackMyStartupError):
    code = "data_load_timeout"


class MutationError(TrackMyStartupError):
    code = "mutation_failed"


class EntityNotFoundError(MutationError):
    code = "not_found"


class OfferTransitionError(MutationError):
    code = "invalid_offer_transition"


class OfferLockedError(MutationError):
    code = "offer_locked"
