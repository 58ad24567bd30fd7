from __future__ import annotations

import json
import logging
import math
from dataclasses import replace
from datetime import date
from typing import Any
from uuid import UUID

from cpd_service.core.config import SETTINGS
from cpd_service.core.errors import NotFoundError, ValidationError
from cpd_service.models.cpd_record import (
    ACTIVITY_TYPES,
    EVIDENCE_KINDS,
    RECORD_SOURCES,
    RECORD_STATUSES,
    CpdRecord,
    Evidence,
    EvidenceStrength,
)
from cpd_service.models.credential import UserCredential
from cpd_service.repos.store import Store
from cpd_service.services.allocation_ledger import HOURS_EPSILON

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset(
    {"title", "hours", "date", "activity_type", "category", "status", "provider", "notes"}
)


def validate_hours(hours: float) -> None:
    if not math.isfinite(hours) or hours <= 0:
        raise ValidationError("hours must be positive")
    if hours > SETTINGS.max_record_hours:
        raise ValidationError(f"hours must not exceed {SETTINGS.max_record_hours:g}")


def _check_choice(field_name: str, value: str, choices: tuple[str, ...]) -> None:
    if value not in choices:
        raise ValidationError(f"{field_name} must be one of {', '.join(choices)}")


def _check_notes(notes: str | None) -> None:
    if notes is None:
        return
    try:
        json.loads(notes)
    except json.JSONDecodeError as exc:
        raise ValidationError("notes must be a JSON document") from exc


def normalise_category(category: str) -> str:
    return category.strip().lower() or "general"


def strength_for_kind(kind: str) -> EvidenceStrength:
    if kind == "certificate":
        return EvidenceStrength.CERTIFICATE_ATTACHED
    return EvidenceStrength.URL_ONLY


class CpdRecordService:
    """Record, evidence and credential-holding maintenance."""

    def __init__(self, store: Store) -> None:
        self._store = store

    def _owned_record(self, user_id: str, record_id: UUID) -> CpdRecord:
        record = self._store.records.get(record_id)
        if record is None or record.user_id != user_id:
            raise NotFoundError("CPD record not found")
        return record

    # ---- records ----

    def create_record(
        self,
        user_id: str,
        *,
        title: str,
        hours: float,
        date: date,
        activity_type: str = "structured",
        category: str = "general",
        status: str = "completed",
        source: str = "manual",
        provider: str | None = None,
        notes: str | None = None,
        external_id: str | None = None,
    ) -> CpdRecord:
        if not title.strip():
            raise ValidationError("title must be non-empty")
        validate_hours(hours)
        _check_choice("activity_type", activity_type, ACTIVITY_TYPES)
        _check_choice("status", status, RECORD_STATUSES)
        _check_choice("source", source, RECORD_SOURCES)
        _check_notes(notes)

        record = CpdRecord.new(
            user_id=user_id,
            title=title.strip(),
            hours=hours,
            date=date,
            activity_type=activity_type,
            category=normalise_category(category),
            status=status,
            source=source,
            provider=provider,
            notes=notes,
            external_id=external_id,
        )
        with self._store.atomic():
            self._store.records.add(record)
        logger.info(
            "Created CPD record hours=%g category=%s",
            hours,
            record.category,
            extra={"user_id": user_id, "cpd_record_id": str(record.id)},
        )
        return record

    def get_record(self, user_id: str, record_id: UUID) -> CpdRecord:
        return self._owned_record(user_id, record_id)

    def update_record(self, user_id: str, record_id: UUID, **changes: Any) -> CpdRecord:
        """Apply a partial update to a logged record.

        Platform records are audit evidence for a quiz pass and stay as
        issued.  Hours may not drop below what is already allocated to the
        owner's credentials; the check and the write share one atomic
        section with set_allocations.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"cannot update {', '.join(sorted(unknown))}")
        if not changes:
            raise ValidationError("no fields to update")

        for required in ("title", "hours", "date", "activity_type", "category", "status"):
            if required in changes and changes[required] is None:
                raise ValidationError(f"{required} cannot be cleared")
        if "title" in changes:
            if not changes["title"].strip():
                raise ValidationError("title must be non-empty")
            changes["title"] = changes["title"].strip()
        if "hours" in changes:
            validate_hours(changes["hours"])
        if "activity_type" in changes:
            _check_choice("activity_type", changes["activity_type"], ACTIVITY_TYPES)
        if "status" in changes:
            _check_choice("status", changes["status"], RECORD_STATUSES)
        if "category" in changes:
            changes["category"] = normalise_category(changes["category"])
        _check_notes(changes.get("notes"))

        with self._store.atomic():
            record = self._owned_record(user_id, record_id)
            if record.source == "platform":
                raise ValidationError("platform-issued records cannot be edited")
            if "hours" in changes:
                allocated = sum(
                    a.hours for a in self._store.allocations.list_by_record(record_id)
                )
                if allocated > changes["hours"] + HOURS_EPSILON:
                    raise ValidationError(
                        f"hours cannot drop below the {allocated:g} already allocated"
                    )
            updated = replace(record, **changes)
            self._store.records.update(updated)

        logger.info(
            "Updated CPD record fields=%s",
            ",".join(sorted(changes)),
            extra={"user_id": user_id, "cpd_record_id": str(record_id)},
        )
        return updated

    def delete_record(self, user_id: str, record_id: UUID) -> None:
        with self._store.atomic():
            record = self._owned_record(user_id, record_id)
            if record.source == "platform":
                raise ValidationError("platform-issued records cannot be deleted")
            self._store.delete_record(record_id)
        logger.info(
            "Deleted CPD record",
            extra={"user_id": user_id, "cpd_record_id": str(record_id)},
        )

    def upgrade_evidence_strength(
        self, user_id: str, record_id: UUID, strength: EvidenceStrength
    ) -> CpdRecord:
        """Raise the record's strength; never lowers it."""
        with self._store.atomic():
            record = self._owned_record(user_id, record_id)
            if strength <= record.evidence_strength:
                return record
            upgraded = replace(record, evidence_strength=strength)
            self._store.records.update(upgraded)
        logger.info(
            "Evidence strength %s -> %s",
            record.evidence_strength.label,
            strength.label,
            extra={"cpd_record_id": str(record_id)},
        )
        return upgraded

    # ---- evidence ----

    def attach_evidence(
        self,
        user_id: str,
        record_id: UUID,
        *,
        file_name: str,
        file_type: str,
        kind: str = "other",
    ) -> tuple[Evidence, CpdRecord]:
        if kind not in EVIDENCE_KINDS:
            raise ValidationError(f"kind must be one of {', '.join(EVIDENCE_KINDS)}")
        if not file_name.strip():
            raise ValidationError("file_name must be non-empty")
        with self._store.atomic():
            self._owned_record(user_id, record_id)
            evidence = Evidence.new(
                user_id=user_id,
                file_name=file_name.strip(),
                file_type=file_type,
                kind=kind,
                cpd_record_id=record_id,
            )
            self._store.evidence.add(evidence)
            record = self.upgrade_evidence_strength(
                user_id, record_id, strength_for_kind(kind)
            )
        return evidence, record

    def remove_evidence(self, user_id: str, evidence_id: UUID) -> Evidence:
        """Soft delete. The strength already earned by the record is kept."""
        with self._store.atomic():
            evidence = self._store.evidence.get(evidence_id)
            if evidence is None or evidence.user_id != user_id:
                raise NotFoundError("evidence not found")
            deleted = replace(evidence, status="deleted")
            self._store.evidence.update(deleted)
        return deleted

    # ---- credential holdings ----

    def add_user_credential(
        self,
        user_id: str,
        credential_id: UUID,
        **kwargs,
    ) -> UserCredential:
        hours_completed = kwargs.get("hours_completed", 0.0)
        if not math.isfinite(hours_completed) or hours_completed < 0:
            raise ValidationError("hours_completed must be a non-negative number")
        credential = self._store.credentials.get(credential_id)
        if credential is None:
            raise NotFoundError("credential not found")
        uc = UserCredential.new(user_id=user_id, credential_id=credential_id, **kwargs)
        with self._store.atomic():
            self._store.user_credentials.add(uc)
        return uc

    def remove_user_credential(self, user_id: str, user_credential_id: UUID) -> None:
        with self._store.atomic():
            uc = self._store.user_credentials.get(user_credential_id)
            if uc is None or uc.user_id != user_id:
                raise NotFoundError("user credential not found")
            self._store.remove_user_credential(user_credential_id)
