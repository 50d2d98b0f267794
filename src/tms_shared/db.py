"""
db.py — Supabase clients shared by the core services and the API.

Two clients exist per process. The anon client runs every query a signed-in
user could run from the browser (row-level security applies); the
service-role client backs the Admin / Investment Advisor startup listings,
token revocation and `auth.get_user` lookups.

Usage:
    from tms_shared.db import get_supabase_client

    supabase = get_supabase_client()
    admin = get_supabase_client(service_role=True)
"""

from __future__ import annotations

import threading

import structlog
from supabase import Client, create_client

from tms_shared.config import settings

logger = structlog.get_logger(__name__)

ANON = "anon"
SERVICE_ROLE = "service_role"

_KEY_SETTINGS = {
    ANON: ("supabase_anon_key", "SUPABASE_ANON_KEY"),
    SERVICE_ROLE: ("supabase_service_key", "SUPABASE_SERVICE_KEY"),
}

_lock = threading.Lock()
_clients: dict[str, Client] = {}


def _create(role: str) -> Client:
    attr, env_name = _KEY_SETTINGS[role]
    key = getattr(settings, attr)
    if not key:
        raise RuntimeError(f"{env_name} is not set. Set it in .env.")
    client = create_client(settings.supabase_url, key)
    logger.info("supabase_client_created", role=role, url=settings.supabase_url)
    return client


def get_supabase_client(*, service_role: bool = False) -> Client:
    """Return the process-wide client for the anon or the service role."""
    role = SERVICE_ROLE if service_role else ANON
    with _lock:
        client = _clients.get(role)
        if client is None:
            client = _clients[role] = _create(role)
        return client


def reset_supabase_clients() -> None:
    """Drop cached clients so the next call reads settings again."""
    with _lock:
        _clients.clear()
