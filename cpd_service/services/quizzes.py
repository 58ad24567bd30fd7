from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from cpd_service.core.errors import NotFoundError, ValidationError
from cpd_service.models.certificate import IssuanceOutcome
from cpd_service.models.quiz import QuizAttempt
from cpd_service.repos.store import Store
from cpd_service.services.compliance import round_half_up
from cpd_service.services.issuance import IssuanceService

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AttemptResult:
    attempt: QuizAttempt
    correct: int
    total: int
    pass_mark: int
    attempts_remaining: int
    issuance: IssuanceOutcome | None = None


class QuizService:
    def __init__(self, store: Store, issuance: IssuanceService | None = None) -> None:
        self._store = store
        self._issuance = issuance or IssuanceService(store)

    def submit_attempt(
        self, user_id: str, quiz_id: UUID, answers: list[int]
    ) -> AttemptResult:
        """Grade answers and record the attempt.

        A pass on a quiz that awards hours issues a certificate with its
        platform record in the same call.
        """
        quiz = self._store.quizzes.get(quiz_id)
        if quiz is None or not quiz.active:
            raise NotFoundError("quiz not found")
        total = len(quiz.answer_key)
        if total == 0:
            raise ValidationError("quiz has no questions")
        if len(answers) != total:
            raise ValidationError(f"expected {total} answers, got {len(answers)}")

        with self._store.atomic():
            previous = self._store.quiz_attempts.list_for(user_id, quiz_id)
            if len(previous) >= quiz.max_attempts:
                raise ValidationError(
                    f"maximum attempts ({quiz.max_attempts}) reached"
                )

            correct = sum(1 for given, right in zip(answers, quiz.answer_key) if given == right)
            score = round_half_up(100 * correct / total)
            passed = score >= quiz.pass_mark
            attempt = QuizAttempt.new(
                user_id=user_id,
                quiz_id=quiz_id,
                score=score,
                passed=passed,
                answers=answers,
            )
            self._store.quiz_attempts.add(attempt)

            issuance = None
            if passed and quiz.hours > 0:
                issuance = self._issuance.issue_for_quiz_pass(user_id, quiz, attempt)

        logger.info(
            "Quiz %s attempt scored %d (pass mark %d)",
            quiz_id,
            score,
            quiz.pass_mark,
            extra={"user_id": user_id},
        )
        return AttemptResult(
            attempt=attempt,
            correct=correct,
            total=total,
            pass_mark=quiz.pass_mark,
            attempts_remaining=quiz.max_attempts - len(previous) - 1,
            issuance=issuance,
        )
