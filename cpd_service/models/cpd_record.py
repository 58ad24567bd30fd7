from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import IntEnum
from uuid import UUID, uuid4

ACTIVITY_TYPES = ("structured", "unstructured", "verifiable")
RECORD_STATUSES = ("completed", "in_progress", "planned")
RECORD_SOURCES = ("manual", "platform", "auto", "import")
EVIDENCE_KINDS = ("certificate", "transcript", "agenda", "screenshot", "other")


class EvidenceStrength(IntEnum):
    """How well a record's hours are substantiated.

    Ordered so strengths compare directly; a record only ever moves up.
    """

    MANUAL_ONLY = 0
    URL_ONLY = 1
    CERTIFICATE_ATTACHED = 2
    PROVIDER_VERIFIED = 3

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_label(cls, label: str) -> EvidenceStrength:
        try:
            return cls[label.upper()]
        except KeyError:
            raise ValueError(f"unknown evidence strength {label!r}") from None


@dataclass(frozen=True, slots=True)
class CpdRecord:
    id: UUID
    user_id: str
    title: str
    hours: float
    date: date
    activity_type: str = "structured"  # structured|unstructured|verifiable
    category: str = "general"  # ethics|technical|general|...
    status: str = "completed"  # completed|in_progress|planned
    source: str = "manual"  # manual|platform|auto|import
    evidence_strength: EvidenceStrength = EvidenceStrength.MANUAL_ONLY
    provider: str | None = None
    notes: str | None = None  # JSON document, read by watch_time/attendance rules
    external_id: str | None = None

    @staticmethod
    def new(
        *,
        user_id: str,
        title: str,
        hours: float,
        date: date,
        activity_type: str = "structured",
        category: str = "general",
        status: str = "completed",
        source: str = "manual",
        evidence_strength: EvidenceStrength = EvidenceStrength.MANUAL_ONLY,
        provider: str | None = None,
        notes: str | None = None,
        external_id: str | None = None,
    ) -> CpdRecord:
        return CpdRecord(
            id=uuid4(),
            user_id=user_id,
            title=title,
            hours=hours,
            date=date,
            activity_type=activity_type,
            category=category,
            status=status,
            source=source,
            evidence_strength=evidence_strength,
            provider=provider,
            notes=notes,
            external_id=external_id,
        )

    @property
    def is_structured(self) -> bool:
        return self.activity_type in ("structured", "verifiable")


@dataclass(frozen=True, slots=True)
class CpdAllocation:
    """Share of a record's hours credited to one held credential."""

    id: UUID
    cpd_record_id: UUID
    user_credential_id: UUID
    hours: float

    @staticmethod
    def new(
        *, cpd_record_id: UUID, user_credential_id: UUID, hours: float
    ) -> CpdAllocation:
        return CpdAllocation(
            id=uuid4(),
            cpd_record_id=cpd_record_id,
            user_credential_id=user_credential_id,
            hours=hours,
        )


@dataclass(frozen=True, slots=True)
class Evidence:
    """Uploaded-file metadata. The bytes live in external object storage."""

    id: UUID
    user_id: str
    file_name: str
    file_type: str
    kind: str = "other"  # certificate|transcript|agenda|screenshot|other
    status: str = "inbox"  # inbox|assigned|deleted
    cpd_record_id: UUID | None = None

    @staticmethod
    def new(
        *,
        user_id: str,
        file_name: str,
        file_type: str,
        kind: str = "other",
        cpd_record_id: UUID | None = None,
    ) -> Evidence:
        return Evidence(
            id=uuid4(),
            user_id=user_id,
            file_name=file_name,
            file_type=file_type,
            kind=kind,
            status="assigned" if cpd_record_id is not None else "inbox",
            cpd_record_id=cpd_record_id,
        )
