"""Certificate issuance.

Three pathways lead to a certificate:

  completion_rules  issue_if_eligible(): a logged record whose completion
                    rules all pass.  Keyed by the record: one active
                    certificate per record.
  quiz_pass         issue_for_quiz_pass(): a passing quiz attempt.  Creates
                    a platform record and its certificate together, keyed
                    by user and quiz ("quiz_pass:<user>:<quiz>"), so
                    passing the same quiz again credits its hours once.
  provider_event    ingest_provider_event(): a training provider reports a
                    completion.  Keyed by the provider's Idempotency-Key.

Every pathway runs its check-then-create inside store.atomic(), so a
retried or concurrent duplicate call finds the first call's certificate
and returns it with created=False instead of failing.  Record and
certificate are written together or not at all.

Certificate codes look like CERT-2026-k3x9q0ab: a configurable upper-case
prefix, the issuance year and 8 characters of [a-z0-9] (36**8, about
2.8e12, per prefix-year).  The store's unique index on the code is the
final backstop; a collision is retried with a fresh suffix.
"""

from __future__ import annotations

import logging
import re
import secrets
import string
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from cpd_service.core.config import SETTINGS
from cpd_service.core.errors import (
    ConflictError,
    NotEligibleError,
    NotFoundError,
    ValidationError,
)
from cpd_service.core.metrics import CERTIFICATES_ISSUED, PROVIDER_EVENTS
from cpd_service.models.certificate import (
    Certificate,
    CompletionEvent,
    CompletionEventInput,
    IssuanceOutcome,
    ProviderTenant,
)
from cpd_service.models.cpd_record import CpdRecord, EvidenceStrength
from cpd_service.models.quiz import Quiz, QuizAttempt
from cpd_service.repos.store import Store
from cpd_service.services.completion_rules import CompletionRuleEvaluator
from cpd_service.services.cpd_records import normalise_category, validate_hours
from cpd_service.services.task_queue import CERTIFICATE_ISSUED, task_queue

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_lowercase + string.digits
CODE_SUFFIX_LENGTH = 8
CERTIFICATE_CODE_RE = re.compile(r"^[A-Z]+-\d{4}-[a-z0-9]{8}$")
MAX_CODE_ATTEMPTS = 5

PLATFORM_PROVIDER = "CPD Compliance"


def generate_certificate_code(prefix: str | None = None, year: int | None = None) -> str:
    prefix = prefix or SETTINGS.certificate_prefix
    year = year or datetime.now(timezone.utc).year
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_SUFFIX_LENGTH))
    return f"{prefix}-{year}-{suffix}"


def is_certificate_code(code: str) -> bool:
    return CERTIFICATE_CODE_RE.match(code) is not None


def verification_url(code: str) -> str:
    return f"{SETTINGS.base_url}/v1/certificates/verify/{code}"


class IssuanceService:
    def __init__(
        self,
        store: Store,
        evaluator: CompletionRuleEvaluator | None = None,
        *,
        code_factory: Callable[[], str] = generate_certificate_code,
    ) -> None:
        self._store = store
        self._evaluator = evaluator or CompletionRuleEvaluator(store)
        self._code_factory = code_factory

    # ---- helpers ----

    def _primary_credential_name(self, user_id: str) -> str | None:
        for uc in self._store.user_credentials.list_by_user(user_id):
            if uc.is_primary:
                credential = self._store.credentials.get(uc.credential_id)
                return credential.name if credential else None
        return None

    def _create_certificate(
        self,
        *,
        user_id: str,
        record: CpdRecord,
        title: str,
        idempotency_key: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Certificate:
        """Insert a certificate for the record; caller holds store.atomic()."""
        credential_name = self._primary_credential_name(user_id)
        for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
            code = self._code_factory()
            certificate = Certificate.new(
                user_id=user_id,
                certificate_code=code,
                title=title,
                hours=record.hours,
                category=record.category,
                activity_type=record.activity_type,
                verification_url=verification_url(code),
                credential_name=credential_name,
                cpd_record_id=record.id,
                idempotency_key=idempotency_key,
                metadata=metadata,
            )
            try:
                self._store.certificates.add(certificate)
            except ConflictError:
                if self._store.certificates.get_by_code(code) is None:
                    raise
                logger.warning(
                    "Certificate code collision on attempt %d, retrying",
                    attempt,
                    extra={"cpd_record_id": str(record.id)},
                )
                continue
            return certificate
        raise ConflictError("could not allocate a unique certificate code")

    @staticmethod
    def _issued(pathway: str, certificate: Certificate) -> None:
        CERTIFICATES_ISSUED.labels(pathway=pathway).inc()
        logger.info(
            "Issued certificate via %s",
            pathway,
            extra={
                "user_id": certificate.user_id,
                "certificate_code": certificate.certificate_code,
                "cpd_record_id": str(certificate.cpd_record_id),
            },
        )

    # ---- completion rules pathway ----

    def issue_if_eligible(self, user_id: str, record_id: UUID) -> IssuanceOutcome:
        with self._store.atomic():
            evaluation = self._evaluator.evaluate(user_id, record_id)
            if not evaluation.all_passed:
                raise NotEligibleError(
                    "not all completion rules are met", evaluation=evaluation
                )

            record = self._store.records.get(record_id)
            if record is None or record.user_id != user_id:
                raise NotFoundError("CPD record not found")

            existing = self._store.certificates.get_active_for_record(record_id)
            if existing is not None:
                return IssuanceOutcome(
                    certificate=existing,
                    created=False,
                    record=record,
                    evaluation=evaluation,
                )

            certificate = self._create_certificate(
                user_id=user_id,
                record=record,
                title=record.title,
                metadata={
                    "completion_rules": [
                        {"name": r.rule_name, "type": r.rule_type, "passed": r.passed}
                        for r in evaluation.rules
                    ]
                },
            )

        self._issued("completion_rules", certificate)
        return IssuanceOutcome(
            certificate=certificate, created=True, record=record, evaluation=evaluation
        )

    # ---- quiz pathway ----

    def issue_for_quiz_pass(
        self, user_id: str, quiz: Quiz, attempt: QuizAttempt
    ) -> IssuanceOutcome:
        if not attempt.passed or attempt.user_id != user_id or attempt.quiz_id != quiz.id:
            raise ValidationError("attempt is not a passing attempt of this quiz")
        if quiz.hours <= 0:
            raise ValidationError("quiz does not award CPD hours")

        key = f"quiz_pass:{user_id}:{quiz.id}"
        with self._store.atomic():
            existing = self._store.certificates.get_by_idempotency_key(key)
            if existing is not None:
                record = (
                    self._store.records.get(existing.cpd_record_id)
                    if existing.cpd_record_id
                    else None
                )
                return IssuanceOutcome(certificate=existing, created=False, record=record)

            completed = attempt.completed_at or datetime.now(timezone.utc)
            record = CpdRecord.new(
                user_id=user_id,
                title=f"Quiz: {quiz.title}",
                hours=quiz.hours,
                date=completed.date(),
                activity_type=quiz.activity_type,
                category=quiz.category,
                status="completed",
                source="platform",
                evidence_strength=EvidenceStrength.CERTIFICATE_ATTACHED,
                provider=PLATFORM_PROVIDER,
                external_id=str(attempt.id),
            )
            self._store.records.add(record)
            certificate = self._create_certificate(
                user_id=user_id,
                record=record,
                title=quiz.title,
                idempotency_key=key,
                metadata={
                    "quiz_id": str(quiz.id),
                    "score": attempt.score,
                    "pass_mark": quiz.pass_mark,
                },
            )

        self._issued("quiz_pass", certificate)
        return IssuanceOutcome(certificate=certificate, created=True, record=record)

    # ---- provider pathway ----

    def ingest_provider_event(
        self,
        provider: ProviderTenant,
        idempotency_key: str,
        payload: CompletionEventInput,
    ) -> IssuanceOutcome:
        """Apply a provider's completion report.

        Replaying a key with the same payload returns the original outcome
        flagged duplicate; reusing it for a different payload is a conflict.
        """
        idempotency_key = (idempotency_key or "").strip()
        if not idempotency_key:
            raise ValidationError("Idempotency-Key is required")
        if not payload.activity_title.strip():
            raise ValidationError("activity title is required")
        validate_hours(payload.hours)
        if payload.user_id is None and not payload.external_user_ref:
            raise ValidationError("a user id or user email is required")

        with self._store.atomic():
            prior = self._store.completion_events.get_by_key(
                provider.id, idempotency_key
            )
            if prior is not None:
                return self._replay(prior, payload)

            user_id = payload.user_id
            if user_id is None and payload.external_user_ref:
                user_id = self._store.users.user_id_for(payload.external_user_ref)

            event = CompletionEvent.new(
                provider_id=provider.id,
                idempotency_key=idempotency_key,
                payload=payload,
            )
            event = replace(event, user_id=user_id)
            self._store.completion_events.add(event)

            if user_id is None:
                PROVIDER_EVENTS.labels(status="pending").inc()
                logger.info(
                    "Stored unmatched completion event %s from provider %s",
                    event.id,
                    provider.name,
                )
                return IssuanceOutcome(certificate=None, created=False, event=event)

            record = CpdRecord.new(
                user_id=user_id,
                title=payload.activity_title.strip(),
                hours=payload.hours,
                date=payload.completed_at.date(),
                activity_type=payload.activity_type,
                category=normalise_category(payload.category),
                status="completed",
                source="auto",
                evidence_strength=EvidenceStrength.PROVIDER_VERIFIED,
                provider=provider.name,
                external_id=str(event.id),
            )
            self._store.records.add(record)
            certificate = self._create_certificate(
                user_id=user_id,
                record=record,
                title=record.title,
                idempotency_key=f"provider:{provider.id}:{idempotency_key}",
                metadata={"provider": provider.name, "event_id": str(event.id)},
            )
            event = replace(
                event,
                status="applied",
                cpd_record_id=record.id,
                certificate_id=certificate.id,
            )
            self._store.completion_events.update(event)

        PROVIDER_EVENTS.labels(status="applied").inc()
        self._issued("provider_event", certificate)
        return IssuanceOutcome(
            certificate=certificate, created=True, record=record, event=event
        )

    def _replay(
        self, prior: CompletionEvent, payload: CompletionEventInput
    ) -> IssuanceOutcome:
        if prior.fingerprint != payload.fingerprint():
            PROVIDER_EVENTS.labels(status="conflict").inc()
            raise ConflictError("Idempotency-Key was already used for a different event")
        PROVIDER_EVENTS.labels(status="duplicate").inc()
        certificate = (
            self._store.certificates.get(prior.certificate_id)
            if prior.certificate_id
            else None
        )
        record = (
            self._store.records.get(prior.cpd_record_id) if prior.cpd_record_id else None
        )
        return IssuanceOutcome(
            certificate=certificate,
            created=False,
            record=record,
            event=prior,
            duplicate=True,
        )

    # ---- verification & revocation ----

    def verify(self, code: str) -> Certificate:
        """Public lookup. Malformed codes are rejected before any lookup."""
        if not is_certificate_code(code):
            raise ValidationError("malformed certificate code")
        certificate = self._store.certificates.get_by_code(code)
        if certificate is None:
            raise NotFoundError("certificate not found")
        return certificate

    def revoke(
        self, user_id: str, certificate_id: UUID, *, reason: str | None = None
    ) -> Certificate:
        with self._store.atomic():
            certificate = self._store.certificates.get(certificate_id)
            if certificate is None or certificate.user_id != user_id:
                raise NotFoundError("certificate not found")
            if not certificate.is_active:
                return certificate
            metadata = dict(certificate.metadata)
            metadata["revoked_at"] = datetime.now(timezone.utc).isoformat()
            if reason:
                metadata["revocation_reason"] = reason
            revoked = replace(certificate, status="revoked", metadata=metadata)
            self._store.certificates.update(revoked)
        logger.info(
            "Revoked certificate",
            extra={"user_id": user_id, "certificate_code": revoked.certificate_code},
        )
        return revoked


async def announce_issuance(outcome: IssuanceOutcome) -> None:
    """Queue the certificate_issued notification for a newly created certificate."""
    if not outcome.created or outcome.certificate is None:
        return
    certificate = outcome.certificate
    await task_queue.enqueue(
        CERTIFICATE_ISSUED,
        {
            "user_id": certificate.user_id,
            "certificate_id": str(certificate.id),
            "certificate_code": certificate.certificate_code,
            "title": certificate.title,
            "hours": certificate.hours,
            "verification_url": certificate.verification_url,
        },
    )
