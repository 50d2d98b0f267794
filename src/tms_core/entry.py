"""
entry.py — decide what an incoming URL opens before any session exists.

    standalone marketing path              → PUBLIC_PAGE
    ?type=recovery, or access + refresh    → RESET_PASSWORD
    lone access_token (query or fragment)  → EMAIL_CONFIRMATION
    anything else                          → APPLICATION
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from urllib.parse import parse_qs

from tms_shared.constants import PUBLIC_PATHS

MIN_PASSWORD_LENGTH = 8


class EntryKind(str, Enum):
    PUBLIC_PAGE = "public_page"
    RESET_PASSWORD = "reset_password"
    EMAIL_CONFIRMATION = "email_confirmation"
    APPLICATION = "application"


@dataclass(frozen=True)
class Entry:
    kind: EntryKind
    path: str
    access_token: str | None = None
    refresh_token: str | None = None


def _params(raw: str) -> dict[str, str]:
    parsed = parse_qs(raw.lstrip("?#"), keep_blank_values=False)
    return {key: values[0] for key, values in parsed.items() if values}


def normalize_path(path: str) -> str:
    path = "/" + path.strip().strip("/")
    return path.lower()


def resolve_entry(path: str, query: str = "", fragment: str = "") -> Entry:
    path = normalize_path(path)
    if path in PUBLIC_PATHS:
        return Entry(kind=EntryKind.PUBLIC_PAGE, path=path)

    query_params = _params(query)
    fragment_params = _params(fragment)

    access_token = query_params.get("access_token") or fragment_params.get("access_token")
    refresh_token = query_params.get("refresh_token") or fragment_params.get("refresh_token")

    is_recovery = (
        query_params.get("type") == "recovery"
        or fragment_params.get("type") == "recovery"
        or ("access_token" in query_params and "refresh_token" in query_params)
    )
    if is_recovery:
        return Entry(
            kind=EntryKind.RESET_PASSWORD,
            path=path,
            access_token=access_token,
            refresh_token=refresh_token,
        )

    if access_token:
        return Entry(kind=EntryKind.EMAIL_CONFIRMATION, path=path, access_token=access_token)

    return Entry(kind=EntryKind.APPLICATION, path=path)


def validate_new_password(password: str, confirmation: str) -> dict[str, str]:
    """Return field -> message for every rule the new password breaks."""
    errors: dict[str, str] = {}

    if len(password) < MIN_PASSWORD_LENGTH:
        errors["password"] = "Password must be at least 8 characters long"
    elif not re.search(r"[a-z]", password):
        errors["password"] = "Password must contain at least one lowercase letter"
    elif not re.search(r"[A-Z]", password):
        errors["password"] = "Password must contain at least one uppercase letter"
    elif not re.search(r"\d", password):
        errors["password"] = "Password must contain at least one number"

    if password != confirmation:
        errors["confirm_password"] = "Passwords do not match"

    return errors
