from __future__ import annotations

from typing import Protocol
from uuid import UUID

from cpd_service.models.completion import CompletionRule
from cpd_service.models.quiz import Quiz, QuizAttempt


class CompletionRuleRepo(Protocol):
    def add(self, rule: CompletionRule) -> None: ...
    def list_by_record(self, record_id: UUID) -> list[CompletionRule]: ...
    def remove_for_record(self, record_id: UUID) -> int: ...


class QuizRepo(Protocol):
    def get(self, quiz_id: UUID) -> Quiz | None: ...
    def add(self, quiz: Quiz) -> None: ...


class QuizAttemptRepo(Protocol):
    def add(self, attempt: QuizAttempt) -> None: ...
    def list_for(self, user_id: str, quiz_id: UUID) -> list[QuizAttempt]: ...


class InMemoryCompletionRuleRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, CompletionRule] = {}

    def add(self, rule: CompletionRule) -> None:
        self._by_id[rule.id] = rule

    def list_by_record(self, record_id: UUID) -> list[CompletionRule]:
        return [r for r in self._by_id.values() if r.cpd_record_id == record_id]

    def remove_for_record(self, record_id: UUID) -> int:
        doomed = [r.id for r in self.list_by_record(record_id)]
        for rule_id in doomed:
            del self._by_id[rule_id]
        return len(doomed)


class InMemoryQuizRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Quiz] = {}

    def get(self, quiz_id: UUID) -> Quiz | None:
        return self._by_id.get(quiz_id)

    def add(self, quiz: Quiz) -> None:
        self._by_id[quiz.id] = quiz


class InMemoryQuizAttemptRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, QuizAttempt] = {}

    def add(self, attempt: QuizAttempt) -> None:
        self._by_id[attempt.id] = attempt

    def list_for(self, user_id: str, quiz_id: UUID) -> list[QuizAttempt]:
        return [
            a
            for a in self._by_id.values()
            if a.user_id == user_id and a.quiz_id == quiz_id
        ]
