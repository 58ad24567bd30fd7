"""Shared pydantic pieces for the HTTP layer.

Response bodies use camelCase keys (totalHoursCompleted, allPassed, ...);
request bodies accept either camelCase or snake_case.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from cpd_service.models.completion import CompletionCheckResult


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# NaN and infinity parse as JSON numbers but never compare as hours
Hours = Annotated[float, Field(allow_inf_nan=False)]


class RuleEvaluationOut(CamelModel):
    rule_id: UUID
    rule_name: str
    rule_type: str
    passed: bool
    detail: str | None = None


class CompletionCheckOut(CamelModel):
    rules: list[RuleEvaluationOut]
    all_passed: bool
    eligible_for_certificate: bool

    @classmethod
    def of(cls, result: CompletionCheckResult) -> CompletionCheckOut:
        return cls(
            rules=[
                RuleEvaluationOut(
                    rule_id=r.rule_id,
                    rule_name=r.rule_name,
                    rule_type=r.rule_type,
                    passed=r.passed,
                    detail=r.detail,
                )
                for r in result.rules
            ],
            all_passed=result.all_passed,
            eligible_for_certificate=result.eligible_for_certificate,
        )
