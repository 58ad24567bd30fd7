"""Completion rule evaluation and rule-gated certificate issuance.

- GET  /v1/completion?recordId=...   evaluate the record's rules
- POST /v1/completion                issue a certificate when every rule passes

Issuance is idempotent per record: repeating the POST returns the
certificate already issued with 200 instead of 201.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from cpd_service.api.certificates import CertificateOut
from cpd_service.api.dependencies import require_user
from cpd_service.api.ratelimit import ISSUANCE_LIMIT, require_rate_limit
from cpd_service.api.schemas import CamelModel, CompletionCheckOut
from cpd_service.models.principal import Principal
from cpd_service.repos.store import store
from cpd_service.services.completion_rules import CompletionRuleEvaluator
from cpd_service.services.issuance import IssuanceService, announce_issuance

router = APIRouter(prefix="/v1/completion", tags=["completion"])

_evaluator = CompletionRuleEvaluator(store)
_issuance = IssuanceService(store, _evaluator)


class IssueIn(CamelModel):
    cpd_record_id: UUID


class IssueOut(CamelModel):
    created: bool
    certificate: CertificateOut
    completion: CompletionCheckOut


@router.get("", response_model=CompletionCheckOut)
def evaluate_completion(
    principal: Annotated[Principal, Depends(require_user)],
    record_id: Annotated[UUID, Query(alias="recordId")],
) -> CompletionCheckOut:
    return CompletionCheckOut.of(_evaluator.evaluate(principal.user_id, record_id))


@router.post(
    "",
    response_model=IssueOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_rate_limit(ISSUANCE_LIMIT))],
)
async def issue_certificate(
    body: IssueIn,
    principal: Annotated[Principal, Depends(require_user)],
    response: Response,
) -> IssueOut:
    outcome = _issuance.issue_if_eligible(principal.user_id, body.cpd_record_id)
    await announce_issuance(outcome)
    if not outcome.created:
        response.status_code = status.HTTP_200_OK
    return IssueOut(
        created=outcome.created,
        certificate=CertificateOut.of(outcome.certificate),  # type: ignore[arg-type]
        completion=CompletionCheckOut.of(outcome.evaluation),  # type: ignore[arg-type]
    )
