"""Shared FastAPI dependencies."""

from __future__ import annotations

from tms_api.middleware.auth import (
    SessionCredentials,
    get_context,
    get_credentials,
    get_registry,
    require_role,
)

__all__ = [
    "SessionCredentials",
    "get_context",
    "get_credentials",
    "get_registry",
    "require_role",
]
