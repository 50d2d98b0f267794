"""Shared test fixtures for the TrackMyStartup session service."""

from __future__ import annotations

from contextlib import ExitStack
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

CHAIN_METHODS = (
    "select", "eq", "neq", "in_", "gt", "gte", "lt", "lte",
    "ilike", "order", "limit", "range",
    "insert", "update", "upsert", "delete",
)


def make_chain(data=None, count=0):
    """Create a chainable mock that returns given data on execute()."""
    chain = MagicMock()
    chain.execute.return_value = MagicMock(data=data or [], count=count)
    for method in CHAIN_METHODS:
        getattr(chain, method).return_value = chain
    return chain


def make_supabase(table_data=None):
    """Create a mock Supabase client.

    table_data: optional dict mapping table name -> list of rows.
    All unmapped tables return empty results.
    """
    client = MagicMock()
    td = table_data or {}

    def _table(name):
        return make_chain(td.get(name, []))

    client.table.side_effect = _table
    return client


# ---------------------------------------------------------------------------
# Rows
# ---------------------------------------------------------------------------


def user_row(**overrides):
    row = {
        "id": "user-1",
        "email": "founder@acme.io",
        "name": "Ada Founder",
        "role": "Startup",
        "startup_name": "Acme",
        "registration_date": "2024-01-15",
        "investor_code": None,
        "ca_code": None,
        "cs_code": None,
        "investment_advisor_code": None,
        "investment_advisor_code_entered": None,
        "is_profile_complete": True,
    }
    row.update(overrides)
    return row


def startup_row(**overrides):
    row = {
        "id": 1,
        "name": "Acme",
        "investment_type": "Seed",
        "investment_value": 100000,
        "equity_allocation": 10,
        "current_valuation": 1000000,
        "compliance_status": "Pending",
        "sector": "Fintech",
        "total_funding": 250000,
        "total_revenue": 50000,
        "registration_date": "2022-04-01",
        "country": "IN",
        "company_type": "Private Limited Company",
        "user_id": "user-1",
        "founders": [
            {"name": "Ada Founder", "email": "founder@acme.io", "shares": 1000,
             "equity_percentage": 60.0},
        ],
    }
    row.update(overrides)
    return row


def offer_row(**overrides):
    row = {
        "id": 10,
        "investor_email": "ivy@fund.vc",
        "investor_name": "Ivy Investor",
        "startup_name": "Acme",
        "startup_id": 1,
        "offer_amount": 50000,
        "equity_percentage": 5,
        "status": "pending",
        "created_at": "2024-05-01T10:00:00+00:00",
    }
    row.update(overrides)
    return row


def addition_request_row(**overrides):
    row = {
        "id": 20,
        "name": "Acme",
        "investment_type": "Seed",
        "investment_value": 100000,
        "equity_allocation": 10,
        "sector": "Fintech",
        "total_funding": 250000,
        "total_revenue": 50000,
        "registration_date": "2022-04-01",
        "investor_code": "INV-1",
        "status": "approved",
    }
    row.update(overrides)
    return row


@pytest.fixture()
def sample_user_row():
    return user_row()


@pytest.fixture()
def sample_startup_row():
    return startup_row()


@pytest.fixture()
def sample_offer_row():
    return offer_row()


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


def make_session(
    *,
    session_id="sess-1",
    user_id="user-1",
    email="founder@acme.io",
    confirmed=True,
    metadata=None,
):
    from tms_core.auth.session import Session

    return Session(
        session_id=session_id,
        user_id=user_id,
        email=email,
        email_confirmed_at=datetime(2024, 1, 15, tzinfo=timezone.utc) if confirmed else None,
        metadata=metadata if metadata is not None
        else {"name": "Ada Founder", "role": "Startup", "startupName": "Acme"},
    )


@pytest.fixture()
def provider():
    """AuthProvider double; sign_out is awaited and recorded."""
    mock = MagicMock()
    mock.sign_out = AsyncMock()
    return mock


@pytest.fixture(autouse=True)
def _clear_caches():
    """Clear the in-memory caches between tests."""
    from tms_core.utils.cache import advisor_branding_cache

    yield
    advisor_branding_cache.clear()


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


@pytest.fixture()
def session():
    return make_session()


@pytest.fixture()
def registry(provider):
    from tms_core.context import ContextRegistry

    return ContextRegistry(lambda access_token: provider)


@pytest.fixture()
def app(registry, session):
    """FastAPI app whose bearer-token check resolves to `session`."""
    from tms_api.app import create_app
    from tms_api.middleware.auth import SessionCredentials, get_credentials

    app = create_app(registry)
    app.dependency_overrides[get_credentials] = lambda: SessionCredentials(
        access_token="test-token", session=session, claims={"sub": session.user_id}
    )
    return app


@pytest.fixture()
def client(app):
    """HTTP test client; one event loop for the whole test."""
    with TestClient(app) as c:
        yield c


# ---------------------------------------------------------------------------
# Service patches
# ---------------------------------------------------------------------------

LOADER_SERVICES = {
    "list_user_startups": "tms_core.services.startup_service.list_user_startups",
    "list_all_startups": "tms_core.services.startup_service.list_all_startups",
    "list_assigned_startups": "tms_core.services.startup_service.list_assigned_startups",
    "get_startups_by_names": "tms_core.services.startup_service.get_startups_by_names",
    "list_new_investments": "tms_core.services.investment_service.list_new_investments",
    "list_addition_requests": "tms_core.services.request_service.list_addition_requests",
    "list_users": "tms_core.services.user_service.list_users",
    "list_verification_requests": "tms_core.services.request_service.list_verification_requests",
    "list_validation_requests": "tms_core.services.request_service.list_validation_requests",
    "list_offers_for_investor": "tms_core.services.offer_service.list_offers_for_investor",
    "list_all_offers": "tms_core.services.offer_service.list_all_offers",
    "list_offers_for_startup": "tms_core.services.offer_service.list_offers_for_startup",
    "get_advisor_branding": "tms_core.services.user_service.get_advisor_branding",
}


@pytest.fixture()
def services():
    """Patch every query the loader can issue; all return [] by default."""
    with ExitStack() as stack:
        mocks = {
            name: stack.enter_context(patch(target, return_value=[]))
            for name, target in LOADER_SERVICES.items()
        }
        mocks["get_advisor_branding"].return_value = None
        yield mocks


def sign_in(client, **profile_overrides):
    """Post a SIGNED_IN event and wait until the profile and data are loaded."""
    from tms_shared.models.users import UserProfile

    profile = UserProfile.from_db_row(user_row(**profile_overrides))
    with patch("tms_core.services.user_service.get_profile", return_value=profile):
        response = client.post(
            "/v1/session/events",
            params={"wait": "true"},
            json={"event": "SIGNED_IN", "sequence": 1},
        )
    assert response.status_code == 200
    return response.json()["data"]
