"""Compliance rule and task endpoints."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Query

from tms_shared.models.compliance import ComplianceRuleSet

from tms_core.compliance import tasks_for_startup
from tms_core.context import AppContext
from tms_core.services import compliance_service, startup_service

from tms_api.dependencies import get_context, require_role
from tms_api.responses import wrap_response

router = APIRouter(prefix="/compliance", tags=["compliance"])


@router.get("/rules")
async def list_rules(
    country: str | None = Query(None, description="Filter by country code"),
    ctx: AppContext = Depends(get_context),
):
    ctx.require_user()
    rule_sets = await asyncio.to_thread(compliance_service.list_rule_sets, country)
    return wrap_response(rule_sets)


@router.get("/rules/{country_code}/{company_type}")
async def get_rules(
    country_code: str,
    company_type: str,
    ctx: AppContext = Depends(get_context),
):
    ctx.require_user()
    rule_set = await asyncio.to_thread(
        compliance_service.get_rule_set, country_code, company_type
    )
    if rule_set is None:
        raise HTTPException(status_code=404, detail="Compliance rules not found")
    return wrap_response(rule_set)


@router.put("/rules")
async def put_rules(
    body: ComplianceRuleSet,
    ctx: AppContext = Depends(require_role("Admin")),
):
    saved = await asyncio.to_thread(compliance_service.upsert_rule_set, body)
    return wrap_response(saved)


@router.get("/tasks/{startup_id}")
async def get_tasks(
    startup_id: int,
    through_year: int | None = Query(None, ge=1900, le=2100),
    ctx: AppContext = Depends(get_context),
):
    ctx.require_user()
    startup = ctx.loader.store.find("startups", startup_id)
    if startup is None:
        startup = await asyncio.to_thread(startup_service.get_startup, startup_id)
    if startup is None:
        raise HTTPException(status_code=404, detail="Startup not found")

    tasks = await tasks_for_startup(startup, through_year)
    return wrap_response(tasks)
