"""Addition, verification and validation request data service."""

from __future__ import annotations

from datetime import date

from tms_shared.db import get_supabase_client
from tms_shared.models.requests import (
    StartupAdditionRequest,
    ValidationRequest,
    VerificationRequest,
)

from tms_core.errors import EntityNotFoundError

# ---------------------------------------------------------------------------
# Startup addition requests
# ---------------------------------------------------------------------------


def list_addition_requests() -> list[StartupAdditionRequest]:
    supabase = get_supabase_client()
    result = (
        supabase.table("startup_addition_requests")
        .select("*")
        .order("created_at", desc=True)
        .execute()
    )
    return [StartupAdditionRequest.from_db_row(row) for row in result.data or []]


def get_addition_request(request_id: int) -> StartupAdditionRequest | None:
    supabase = get_supabase_client()
    result = (
        supabase.table("startup_addition_requests")
        .select("*")
        .eq("id", request_id)
        .limit(1)
        .execute()
    )
    return StartupAdditionRequest.from_db_row(result.data[0]) if result.data else None


def create_addition_request(request: StartupAdditionRequest) -> StartupAdditionRequest:
    supabase = get_supabase_client()
    result = (
        supabase.table("startup_addition_requests")
        .insert(request.to_insert_dict())
        .execute()
    )
    return StartupAdditionRequest.from_db_row(result.data[0]) if result.data else request


def set_addition_request_status(request_id: int, status: str) -> StartupAdditionRequest:
    supabase = get_supabase_client()
    result = (
        supabase.table("startup_addition_requests")
        .update({"status": status})
        .eq("id", request_id)
        .execute()
    )
    if not result.data:
        raise EntityNotFoundError(f"Startup addition request {request_id} not found")
    return StartupAdditionRequest.from_db_row(result.data[0])


# ---------------------------------------------------------------------------
# Verification requests
# ---------------------------------------------------------------------------


def list_verification_requests() -> list[VerificationRequest]:
    supabase = get_supabase_client()
    result = (
        supabase.table("verification_requests")
        .select("*")
        .order("created_at", desc=True)
        .execute()
    )
    return [VerificationRequest.from_db_row(row) for row in result.data or []]


def get_verification_request(request_id: int) -> VerificationRequest | None:
    supabase = get_supabase_client()
    result = (
        supabase.table("verification_requests")
        .select("*")
        .eq("id", request_id)
        .limit(1)
        .execute()
    )
    return VerificationRequest.from_db_row(result.data[0]) if result.data else None


def create_verification_request(startup_id: int, startup_name: str) -> VerificationRequest:
    supabase = get_supabase_client()
    result = (
        supabase.table("verification_requests")
        .insert(
            {
                "startup_id": startup_id,
                "startup_name": startup_name,
                "request_date": date.today().isoformat(),
            }
        )
        .execute()
    )
    return VerificationRequest.from_db_row(result.data[0])


def delete_verification_request(request_id: int) -> None:
    supabase = get_supabase_client()
    supabase.table("verification_requests").delete().eq("id", request_id).execute()


# ---------------------------------------------------------------------------
# Validation requests
# ---------------------------------------------------------------------------


def list_validation_requests() -> list[ValidationRequest]:
    supabase = get_supabase_client()
    result = (
        supabase.table("validation_requests")
        .select("*")
        .order("created_at", desc=True)
        .execute()
    )
    return [ValidationRequest.from_db_row(row) for row in result.data or []]


def update_validation_request(
    request_id: int, status: str, admin_notes: str | None = None
) -> ValidationRequest:
    supabase = get_supabase_client()
    result = (
        supabase.table("validation_requests")
        .update({"status": status, "admin_notes": admin_notes})
        .eq("id", request_id)
        .execute()
    )
    if not result.data:
        raise EntityNotFoundError(f"Validation request {request_id} not found")
    return ValidationRequest.from_db_row(result.data[0])
