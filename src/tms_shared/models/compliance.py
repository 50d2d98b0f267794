"""
models/compliance.py — Pydantic models for the compliance_rules table and
the per-year compliance tasks derived from it.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ComplianceRule(BaseModel):
    id: str
    name: str
    ca_required: bool = False
    cs_required: bool = False


class ComplianceRuleSet(BaseModel):
    """Matches a compliance_rules row: one country and company type."""

    country_code: str
    company_type: str
    first_year: list[ComplianceRule] = Field(default_factory=list)
    annual: list[ComplianceRule] = Field(default_factory=list)

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "ComplianceRuleSet":
        rules = row.get("rules") or {}
        return cls(
            country_code=row["country_code"],
            company_type=row["company_type"],
            first_year=rules.get("first_year") or [],
            annual=rules.get("annual") or [],
        )

    def to_insert_dict(self) -> dict[str, Any]:
        return {
            "country_code": self.country_code,
            "company_type": self.company_type,
            "rules": {
                "first_year": [r.model_dump() for r in self.first_year],
                "annual": [r.model_dump() for r in self.annual],
            },
        }


class ComplianceTask(BaseModel):
    task_id: str
    entity_identifier: str
    entity_display_name: str
    year: int
    task_name: str
    ca_required: bool
    cs_required: bool
    task_type: str
