from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class CompletionRule:
    id: UUID
    cpd_record_id: UUID
    name: str
    rule_type: str  # quiz_pass|evidence_upload|watch_time|attendance
    config: str  # JSON document, camelCase keys
    active: bool = True

    @staticmethod
    def new(
        *, cpd_record_id: UUID, name: str, rule_type: str, config: str = "{}"
    ) -> CompletionRule:
        return CompletionRule(
            id=uuid4(),
            cpd_record_id=cpd_record_id,
            name=name,
            rule_type=rule_type,
            config=config,
        )


@dataclass(frozen=True, slots=True)
class RuleEvaluation:
    rule_id: UUID
    rule_name: str
    rule_type: str
    passed: bool
    detail: str | None = None


@dataclass(frozen=True, slots=True)
class CompletionCheckResult:
    rules: list[RuleEvaluation] = field(default_factory=list)
    all_passed: bool = True
    eligible_for_certificate: bool = True
