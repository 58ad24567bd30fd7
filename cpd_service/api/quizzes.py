"""Quiz attempts.

POST /v1/quizzes/{quiz_id}/attempts grades the answers; a pass on a quiz
that awards hours also logs a platform record and issues its certificate.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status

from cpd_service.api.certificates import CertificateOut
from cpd_service.api.dependencies import require_user
from cpd_service.api.ratelimit import QUIZ_ATTEMPT_LIMIT, require_rate_limit
from cpd_service.api.schemas import CamelModel
from cpd_service.models.principal import Principal
from cpd_service.repos.store import store
from cpd_service.services.issuance import announce_issuance
from cpd_service.services.quizzes import QuizService

router = APIRouter(prefix="/v1/quizzes", tags=["quizzes"])

_quizzes = QuizService(store)


class AttemptIn(CamelModel):
    answers: list[int]


class AttemptOut(CamelModel):
    attempt_id: UUID
    score: int
    passed: bool
    correct: int
    total: int
    pass_mark: int
    attempts_remaining: int
    cpd_record_id: UUID | None = None
    certificate: CertificateOut | None = None


@router.post(
    "/{quiz_id}/attempts",
    response_model=AttemptOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_rate_limit(QUIZ_ATTEMPT_LIMIT))],
)
async def submit_attempt(
    quiz_id: UUID,
    body: AttemptIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> AttemptOut:
    result = _quizzes.submit_attempt(principal.user_id, quiz_id, body.answers)
    issuance = result.issuance
    if issuance is not None:
        await announce_issuance(issuance)
    return AttemptOut(
        attempt_id=result.attempt.id,
        score=result.attempt.score,
        passed=result.attempt.passed,
        correct=result.correct,
        total=result.total,
        pass_mark=result.pass_mark,
        attempts_remaining=result.attempts_remaining,
        cpd_record_id=issuance.record.id if issuance and issuance.record else None,
        certificate=(
            CertificateOut.of(issuance.certificate)
            if issuance and issuance.certificate
            else None
        ),
    )
