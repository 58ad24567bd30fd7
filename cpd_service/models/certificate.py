from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from cpd_service.models.completion import CompletionCheckResult
from cpd_service.models.cpd_record import CpdRecord


@dataclass(frozen=True, slots=True)
class Certificate:
    id: UUID
    user_id: str
    certificate_code: str
    title: str
    hours: float
    category: str
    activity_type: str
    verification_url: str
    status: str = "active"  # active|revoked
    credential_name: str | None = None
    cpd_record_id: UUID | None = None
    idempotency_key: str | None = None
    issued_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def new(
        *,
        user_id: str,
        certificate_code: str,
        title: str,
        hours: float,
        category: str,
        activity_type: str,
        verification_url: str,
        credential_name: str | None = None,
        cpd_record_id: UUID | None = None,
        idempotency_key: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Certificate:
        return Certificate(
            id=uuid4(),
            user_id=user_id,
            certificate_code=certificate_code,
            title=title,
            hours=hours,
            category=category,
            activity_type=activity_type,
            verification_url=verification_url,
            credential_name=credential_name,
            cpd_record_id=cpd_record_id,
            idempotency_key=idempotency_key,
            issued_at=datetime.now(timezone.utc),
            metadata=dict(metadata or {}),
        )

    @property
    def is_active(self) -> bool:
        return self.status == "active"


@dataclass(frozen=True, slots=True)
class ProviderTenant:
    """External training provider allowed to push completion events."""

    id: UUID
    name: str
    api_key_hash: str  # argon2
    active: bool = True

    @staticmethod
    def new(*, name: str, api_key_hash: str) -> ProviderTenant:
        return ProviderTenant(id=uuid4(), name=name, api_key_hash=api_key_hash)


@dataclass(frozen=True, slots=True)
class CompletionEventInput:
    """Payload of a provider completion push."""

    activity_title: str
    hours: float
    completed_at: datetime
    user_id: str | None = None
    external_user_ref: str | None = None
    category: str = "general"
    activity_type: str = "verifiable"
    credential_name: str | None = None

    def fingerprint(self) -> str:
        # Stable across retries of the same payload
        return "|".join(
            [
                self.activity_title,
                f"{self.hours:.4f}",
                self.completed_at.isoformat(),
                self.user_id or "",
                self.external_user_ref or "",
                self.category,
                self.activity_type,
                self.credential_name or "",
            ]
        )


@dataclass(frozen=True, slots=True)
class CompletionEvent:
    id: UUID
    provider_id: UUID
    idempotency_key: str
    fingerprint: str
    activity_title: str
    hours: float
    category: str
    completed_at: datetime
    status: str = "pending"  # pending|applied
    user_id: str | None = None
    external_user_ref: str | None = None
    cpd_record_id: UUID | None = None
    certificate_id: UUID | None = None

    @staticmethod
    def new(
        *,
        provider_id: UUID,
        idempotency_key: str,
        payload: CompletionEventInput,
    ) -> CompletionEvent:
        return CompletionEvent(
            id=uuid4(),
            provider_id=provider_id,
            idempotency_key=idempotency_key,
            fingerprint=payload.fingerprint(),
            activity_title=payload.activity_title,
            hours=payload.hours,
            category=payload.category,
            completed_at=payload.completed_at,
            user_id=payload.user_id,
            external_user_ref=payload.external_user_ref,
        )


@dataclass(frozen=True, slots=True)
class IssuanceOutcome:
    """What an issuance call produced.

    created is False when an existing certificate was returned; duplicate
    marks a replayed provider event.
    """

    certificate: Certificate | None
    created: bool
    record: CpdRecord | None = None
    evaluation: CompletionCheckResult | None = None
    event: CompletionEvent | None = None
    duplicate: bool = False
