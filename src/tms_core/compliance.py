"""
compliance.py — yearly compliance tasks derived from admin-managed rule sets.

A rule set holds two lists for one country and company type: `first_year`
rules apply only in the registration year, `annual` rules apply every year
from registration onwards. Task ids are stable so uploads and checker
statuses recorded against them survive regeneration.
"""

from __future__ import annotations

import asyncio
from datetime import date

from tms_shared.models.compliance import ComplianceRuleSet, ComplianceTask
from tms_shared.models.startups import Startup

from tms_core.services import compliance_service
from tms_core.utils.logging import get_logger

log = get_logger(__name__)

PARENT_ENTITY = "parent"


def task_id(entity_identifier: str, year: int, task_type: str, rule_id: str) -> str:
    prefix = "fy" if task_type == "first_year" else "an"
    return f"{entity_identifier}-{year}-{prefix}-{rule_id}"


def generate_tasks(
    rule_set: ComplianceRuleSet,
    entity_identifier: str,
    entity_display_name: str,
    registration_date: date,
    through_year: int | None = None,
) -> list[ComplianceTask]:
    through_year = through_year or date.today().year
    tasks: list[ComplianceTask] = []

    for year in range(registration_date.year, through_year + 1):
        batches = [("annual", rule_set.annual)]
        if year == registration_date.year:
            batches.insert(0, ("first_year", rule_set.first_year))

        for task_type, rules in batches:
            for rule in rules:
                tasks.append(
                    ComplianceTask(
                        task_id=task_id(entity_identifier, year, task_type, rule.id),
                        entity_identifier=entity_identifier,
                        entity_display_name=entity_display_name,
                        year=year,
                        task_name=rule.name,
                        ca_required=rule.ca_required,
                        cs_required=rule.cs_required,
                        task_type=task_type,
                    )
                )
    return tasks


async def tasks_for_startup(
    startup: Startup, through_year: int | None = None
) -> list[ComplianceTask]:
    if not (startup.country and startup.company_type and startup.registration_date):
        log.info("compliance_profile_incomplete", startup_id=startup.id)
        return []

    rule_set = await asyncio.to_thread(
        compliance_service.get_rule_set, startup.country, startup.company_type
    )
    if rule_set is None:
        log.info(
            "compliance_rules_missing",
            startup_id=startup.id,
            country=startup.country,
            company_type=startup.company_type,
        )
        return []

    return generate_tasks(
        rule_set,
        PARENT_ENTITY,
        f"Parent Company ({startup.country})",
        startup.registration_date,
        through_year,
    )
