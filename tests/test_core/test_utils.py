"""Tests for the cache, logging and Supabase client helpers."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from tms_shared import db
from tms_core.utils.cache import TTLCache
from tms_core.utils.logging import REDACTED, redact_secrets


def test_cache_expires_entries():
    cache = TTLCache(default_ttl=60)
    with patch("tms_core.utils.cache.time.monotonic", return_value=100.0):
        cache.set("IA-1", "branding")
        cache.set("IA-2", "short", ttl=1)
    with patch("tms_core.utils.cache.time.monotonic", return_value=130.0):
        assert cache.get("IA-1") == "branding"
        assert cache.get("IA-2") is None
    assert len(cache) == 1

    cache.clear()
    assert cache.get("IA-1") is None


def test_cache_discard_removes_one_key():
    cache = TTLCache(default_ttl=60)
    cache.set("IA-1", "a")
    cache.set("IA-2", "b")

    cache.discard("IA-1")
    cache.discard("missing")

    assert cache.get("IA-1") is None
    assert cache.get("IA-2") == "b"


def test_redact_secrets_masks_tokens_only():
    event = {"event": "entry_resolved", "access_token": "eyJ...", "path": "/", "password": "x"}
    result = redact_secrets(None, "info", event)
    assert result["access_token"] == REDACTED
    assert result["password"] == REDACTED
    assert result["path"] == "/"


@pytest.fixture()
def fresh_clients():
    db.reset_supabase_clients()
    yield
    db.reset_supabase_clients()


def test_clients_are_created_once_per_role(fresh_clients):
    with (
        patch.object(db.settings, "supabase_anon_key", "anon-key"),
        patch.object(db.settings, "supabase_service_key", "service-key"),
        patch("tms_shared.db.create_client", side_effect=lambda url, key: MagicMock(key=key)) as create,
    ):
        anon = db.get_supabase_client()
        service = db.get_supabase_client(service_role=True)
        assert db.get_supabase_client() is anon

    assert anon.key == "anon-key"
    assert service.key == "service-key"
    assert create.call_count == 2


def test_missing_key_raises(fresh_clients):
    with patch.object(db.settings, "supabase_service_key", ""):
        with pytest.raises(RuntimeError, match="SUPABASE_SERVICE_KEY"):
            db.get_supabase_client(service_role=True)
