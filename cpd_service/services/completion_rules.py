"""Completion rule evaluation.

Gatekeeper between "a user did an activity" and "a user earned a
certificate".  Each active CompletionRule on a record is checked by the
strategy registered for its rule_type; the record is complete only when
every rule passes.  A record with no active rules is complete by default,
so plain manual logging never needs rules configured.

Evaluation never raises on bad rule data.  Unknown types, unparseable or
incomplete config and unreadable record notes all produce a failed rule
with a detail string.  validate_rule() is the strict counterpart used
when an administrator attaches a rule.

Config documents use camelCase keys:

  quiz_pass        {"quizId": "...", "minScore": 80}
  evidence_upload  {"minFiles": 1, "requiredTypes": ["application/pdf"]}
  watch_time       {"minWatchPercent": 90}
  attendance       {"confirmationRequired": true}

watch_time and attendance read the record's notes document
({"watchPercent": 95, "attendanceConfirmed": true}).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol
from uuid import UUID

from cpd_service.core.errors import NotFoundError, ValidationError
from cpd_service.core.metrics import COMPLETION_EVALUATIONS
from cpd_service.models.completion import (
    CompletionCheckResult,
    CompletionRule,
    RuleEvaluation,
)
from cpd_service.models.cpd_record import CpdRecord, Evidence
from cpd_service.models.quiz import Quiz, QuizAttempt
from cpd_service.repos.store import Store

logger = logging.getLogger(__name__)


class RuleConfigError(ValueError):
    pass


def _number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True, slots=True)
class RuleContext:
    """Read access to the state a rule can inspect for one record."""

    user_id: str
    record: CpdRecord
    store: Store

    def attempts(self, quiz_id: UUID) -> list[QuizAttempt]:
        return self.store.quiz_attempts.list_for(self.user_id, quiz_id)

    def quiz(self, quiz_id: UUID) -> Quiz | None:
        return self.store.quizzes.get(quiz_id)

    def evidence(self) -> list[Evidence]:
        return [
            e
            for e in self.store.evidence.list_by_record(self.record.id)
            if e.user_id == self.user_id and e.status != "deleted"
        ]

    def notes(self) -> dict[str, Any] | None:
        """Parsed notes document; None when the record has no notes.

        Raises RuleConfigError when the notes are not a JSON object.
        """
        if not self.record.notes:
            return None
        try:
            parsed = json.loads(self.record.notes)
        except json.JSONDecodeError as exc:
            raise RuleConfigError("record notes are not valid JSON") from exc
        if not isinstance(parsed, dict):
            raise RuleConfigError("record notes must be a JSON object")
        return parsed


class RuleStrategy(Protocol):
    def validate(self, config: dict[str, Any]) -> None: ...
    def check(
        self, config: dict[str, Any], context: RuleContext
    ) -> tuple[bool, str]: ...


class QuizPassRule:
    def validate(self, config: dict[str, Any]) -> None:
        quiz_id = config.get("quizId")
        if not isinstance(quiz_id, str):
            raise RuleConfigError("quizId is required")
        try:
            UUID(quiz_id)
        except ValueError:
            raise RuleConfigError("quizId must be a UUID") from None
        min_score = config.get("minScore")
        if min_score is not None and not (_number(min_score) and 0 <= min_score <= 100):
            raise RuleConfigError("minScore must be a number between 0 and 100")

    def check(self, config: dict[str, Any], context: RuleContext) -> tuple[bool, str]:
        self.validate(config)
        quiz_id = UUID(config["quizId"])
        attempts = context.attempts(quiz_id)
        min_score = config.get("minScore")

        if min_score is not None:
            best = max((a.score for a in attempts), default=None)
            if best is None:
                return False, "No attempt found"
            return best >= min_score, f"Score: {best}% (required: {min_score:g}%)"

        passing = [a for a in attempts if a.passed]
        if not passing:
            return False, "No passing attempt found"
        best = max(a.score for a in passing)
        quiz = context.quiz(quiz_id)
        pass_mark = quiz.pass_mark if quiz is not None else None
        if pass_mark is None:
            return True, f"Score: {best}%"
        return True, f"Score: {best}% (required: {pass_mark}%)"


class EvidenceUploadRule:
    def validate(self, config: dict[str, Any]) -> None:
        min_files = config.get("minFiles", 1)
        if not (isinstance(min_files, int) and not isinstance(min_files, bool)):
            raise RuleConfigError("minFiles must be an integer")
        if min_files < 0:
            raise RuleConfigError("minFiles must not be negative")
        required = config.get("requiredTypes")
        if required is not None and not (
            isinstance(required, list) and all(isinstance(t, str) for t in required)
        ):
            raise RuleConfigError("requiredTypes must be a list of strings")

    def check(self, config: dict[str, Any], context: RuleContext) -> tuple[bool, str]:
        self.validate(config)
        min_files = config.get("minFiles", 1)
        files = context.evidence()
        if len(files) < min_files:
            return False, f"{len(files)} file(s) uploaded (required: {min_files})"

        required = config.get("requiredTypes") or []
        uploaded = {e.file_type for e in files}
        missing = [t for t in required if t not in uploaded]
        if missing:
            return False, f"Missing required file types: {', '.join(missing)}"
        return True, f"{len(files)} file(s) uploaded (required: {min_files})"


class WatchTimeRule:
    def validate(self, config: dict[str, Any]) -> None:
        pct = config.get("minWatchPercent")
        if not (_number(pct) and 0 <= pct <= 100):
            raise RuleConfigError("minWatchPercent must be a number between 0 and 100")

    def check(self, config: dict[str, Any], context: RuleContext) -> tuple[bool, str]:
        self.validate(config)
        required = config["minWatchPercent"]
        notes = context.notes()
        watched = (notes or {}).get("watchPercent")
        if watched is None:
            return False, "No watch time data found"
        if not _number(watched):
            return False, "Watch time data is not a number"
        return (
            watched >= required,
            f"Watched: {watched:g}% (required: {required:g}%)",
        )


class AttendanceRule:
    def validate(self, config: dict[str, Any]) -> None:
        flag = config.get("confirmationRequired", False)
        if not isinstance(flag, bool):
            raise RuleConfigError("confirmationRequired must be a boolean")

    def check(self, config: dict[str, Any], context: RuleContext) -> tuple[bool, str]:
        self.validate(config)
        if not config.get("confirmationRequired", False):
            return True, "No confirmation required"
        notes = context.notes()
        if notes is None:
            return False, "No attendance data found"
        if notes.get("attendanceConfirmed") is True:
            return True, "Attendance confirmed"
        return False, "Attendance not yet confirmed"


RULE_STRATEGIES: dict[str, RuleStrategy] = {
    "quiz_pass": QuizPassRule(),
    "evidence_upload": EvidenceUploadRule(),
    "watch_time": WatchTimeRule(),
    "attendance": AttendanceRule(),
}


def _parse_config(raw: str) -> dict[str, Any]:
    try:
        config = json.loads(raw) if raw else {}
    except json.JSONDecodeError as exc:
        raise RuleConfigError("config is not valid JSON") from exc
    if not isinstance(config, dict):
        raise RuleConfigError("config must be a JSON object")
    return config


class CompletionRuleEvaluator:
    def __init__(self, store: Store) -> None:
        self._store = store

    def _owned_record(self, user_id: str, record_id: UUID) -> CpdRecord:
        record = self._store.records.get(record_id)
        if record is None or record.user_id != user_id:
            raise NotFoundError("CPD record not found")
        return record

    def _evaluate_rule(self, rule: CompletionRule, context: RuleContext) -> RuleEvaluation:
        strategy = RULE_STRATEGIES.get(rule.rule_type)
        misconfigured = True
        if strategy is None:
            passed, detail = False, f"Unknown rule type: {rule.rule_type}"
        else:
            try:
                passed, detail = strategy.check(_parse_config(rule.config), context)
                misconfigured = False
            except RuleConfigError as exc:
                passed, detail = False, f"Invalid rule configuration: {exc}"

        if misconfigured:
            logger.warning(
                "Completion rule %s failed closed: %s",
                rule.id,
                detail,
                extra={"cpd_record_id": str(rule.cpd_record_id)},
            )
        return RuleEvaluation(
            rule_id=rule.id,
            rule_name=rule.name,
            rule_type=rule.rule_type,
            passed=passed,
            detail=detail,
        )

    def evaluate(self, user_id: str, record_id: UUID) -> CompletionCheckResult:
        record = self._owned_record(user_id, record_id)
        rules = [
            r for r in self._store.completion_rules.list_by_record(record_id) if r.active
        ]
        if not rules:
            COMPLETION_EVALUATIONS.labels(outcome="no_rules").inc()
            return CompletionCheckResult(
                rules=[], all_passed=True, eligible_for_certificate=True
            )

        context = RuleContext(user_id=user_id, record=record, store=self._store)
        evaluations = [self._evaluate_rule(rule, context) for rule in rules]
        all_passed = all(e.passed for e in evaluations)

        COMPLETION_EVALUATIONS.labels(
            outcome="passed" if all_passed else "failed"
        ).inc()
        return CompletionCheckResult(
            rules=evaluations,
            all_passed=all_passed,
            eligible_for_certificate=all_passed,
        )

    # ---- admin ----

    @staticmethod
    def validate_rule(rule_type: str, config: str | dict[str, Any]) -> dict[str, Any]:
        """Strict check used when rules are attached; returns the parsed config."""
        strategy = RULE_STRATEGIES.get(rule_type)
        if strategy is None:
            raise ValidationError(f"unknown rule type: {rule_type}")
        try:
            parsed = _parse_config(config) if isinstance(config, str) else config
            strategy.validate(parsed)
        except RuleConfigError as exc:
            raise ValidationError(f"invalid {rule_type} config: {exc}") from exc
        return parsed

    def add_rule(
        self,
        record_id: UUID,
        *,
        name: str,
        rule_type: str,
        config: str | dict[str, Any],
    ) -> CompletionRule:
        parsed = self.validate_rule(rule_type, config)
        if not name.strip():
            raise ValidationError("rule name must be non-empty")
        with self._store.atomic():
            if self._store.records.get(record_id) is None:
                raise NotFoundError("CPD record not found")
            rule = CompletionRule.new(
                cpd_record_id=record_id,
                name=name.strip(),
                rule_type=rule_type,
                config=json.dumps(parsed),
            )
            self._store.completion_rules.add(rule)
        logger.info(
            "Added %s rule %s",
            rule_type,
            rule.id,
            extra={"cpd_record_id": str(record_id)},
        )
        return rule
