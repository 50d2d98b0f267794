"""Compliance rule set data service."""

from __future__ import annotations

from tms_shared.db import get_supabase_client
from tms_shared.models.compliance import ComplianceRuleSet


def get_rule_set(country_code: str, company_type: str) -> ComplianceRuleSet | None:
    supabase = get_supabase_client()
    result = (
        supabase.table("compliance_rules")
        .select("*")
        .eq("country_code", country_code)
        .eq("company_type", company_type)
        .limit(1)
        .execute()
    )
    return ComplianceRuleSet.from_db_row(result.data[0]) if result.data else None


def list_rule_sets(country_code: str | None = None) -> list[ComplianceRuleSet]:
    supabase = get_supabase_client()
    query = supabase.table("compliance_rules").select("*").order("country_code")
    if country_code:
        query = query.eq("country_code", country_code)
    result = query.execute()
    return [ComplianceRuleSet.from_db_row(row) for row in result.data or []]


def upsert_rule_set(rule_set: ComplianceRuleSet) -> ComplianceRuleSet:
    supabase = get_supabase_client()
    result = (
        supabase.table("compliance_rules")
        .upsert(rule_set.to_insert_dict(), on_conflict="country_code,company_type")
        .execute()
    )
    return ComplianceRuleSet.from_db_row(result.data[0]) if result.data else rule_set
