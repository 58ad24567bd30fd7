"""Completion webhooks from training providers.

POST /v1/provider/events/completion
  headers: X-Provider-Key (tenant auth), Idempotency-Key (required)

Providers retry deliveries, so the key is scoped to the provider and a
replay with the same payload answers 200 with the original outcome.
Events for an unknown learner are kept as pending (202).
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Response, status

from cpd_service.api.certificates import CertificateOut
from cpd_service.api.dependencies import require_provider
from cpd_service.api.ratelimit import PROVIDER_EVENT_LIMIT, require_rate_limit
from cpd_service.api.schemas import CamelModel, Hours
from cpd_service.models.certificate import CompletionEventInput, ProviderTenant
from cpd_service.repos.store import store
from cpd_service.services.issuance import IssuanceService, announce_issuance

router = APIRouter(prefix="/v1/provider/events", tags=["provider"])

_issuance = IssuanceService(store)


class CompletionEventIn(CamelModel):
    activity_title: str
    hours: Hours
    completed_at: datetime
    user_id: str | None = None
    user_email: str | None = None
    category: str = "general"
    activity_type: str = "verifiable"
    credential_name: str | None = None


class CompletionEventOut(CamelModel):
    event_id: UUID
    status: str
    duplicate: bool
    cpd_record_id: UUID | None = None
    certificate: CertificateOut | None = None


@router.post(
    "/completion",
    response_model=CompletionEventOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_rate_limit(PROVIDER_EVENT_LIMIT))],
)
async def ingest_completion(
    body: CompletionEventIn,
    provider: Annotated[ProviderTenant, Depends(require_provider)],
    response: Response,
    idempotency_key: Annotated[str | None, Header()] = None,
) -> CompletionEventOut:
    payload = CompletionEventInput(
        activity_title=body.activity_title,
        hours=body.hours,
        completed_at=body.completed_at,
        user_id=body.user_id,
        external_user_ref=body.user_email.strip().lower() if body.user_email else None,
        category=body.category,
        activity_type=body.activity_type,
        credential_name=body.credential_name,
    )
    outcome = _issuance.ingest_provider_event(provider, idempotency_key or "", payload)
    await announce_issuance(outcome)

    event = outcome.event
    if outcome.duplicate:
        response.status_code = status.HTTP_200_OK
    elif outcome.certificate is None:
        response.status_code = status.HTTP_202_ACCEPTED

    return CompletionEventOut(
        event_id=event.id,  # type: ignore[union-attr]
        status=event.status,  # type: ignore[union-attr]
        duplicate=outcome.duplicate,
        cpd_record_id=outcome.record.id if outcome.record else None,
        certificate=CertificateOut.of(outcome.certificate) if outcome.certificate else None,
    )
