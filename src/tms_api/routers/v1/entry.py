"""Entry routing endpoints (no authentication)."""

from __future__ import annotations

from fastapi import APIRouter, Query
from pydantic import BaseModel

from tms_core.entry import resolve_entry, validate_new_password

from tms_api.responses import wrap_response

router = APIRouter(prefix="/entry", tags=["entry"])


class PasswordCheck(BaseModel):
    password: str
    confirmation: str


@router.get("")
async def get_entry(
    path: str = Query("/", description="Request path"),
    query: str = Query("", description="Raw query string"),
    fragment: str = Query("", description="Raw URL fragment"),
):
    entry = resolve_entry(path, query, fragment)
    return wrap_response(
        {
            "kind": entry.kind.value,
            "path": entry.path,
            "has_access_token": entry.access_token is not None,
            "has_refresh_token": entry.refresh_token is not None,
        }
    )


@router.post("/password-check")
async def check_password(body: PasswordCheck):
    errors = validate_new_password(body.password, body.confirmation)
    return wrap_response({"valid": not errors, "errors": errors})
