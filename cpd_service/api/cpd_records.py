"""CPD record and evidence maintenance.

- POST   /v1/cpd-records                  log a record
- GET    /v1/cpd-records/{id}             read one record
- PATCH  /v1/cpd-records/{id}             partial update (status, hours, notes, ...)
- DELETE /v1/cpd-records/{id}             delete (allocations and rules go with it)
- POST   /v1/cpd-records/{id}/evidence    attach evidence, upgrading strength
- DELETE /v1/evidence/{id}                soft-delete evidence

Evidence bytes are uploaded to object storage by the client; only the
metadata reaches this service.
"""

from __future__ import annotations

import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from cpd_service.api.dependencies import require_user
from cpd_service.api.schemas import CamelModel, Hours
from cpd_service.models.cpd_record import CpdRecord, Evidence
from cpd_service.models.principal import Principal
from cpd_service.repos.store import store
from cpd_service.services.cpd_records import CpdRecordService

router = APIRouter(tags=["cpd-records"])

_records = CpdRecordService(store)


class CpdRecordIn(CamelModel):
    title: str
    hours: Hours
    date: datetime.date
    activity_type: str = "structured"
    category: str = "general"
    status: str = "completed"
    provider: str | None = None
    notes: str | None = None
    external_id: str | None = None


class CpdRecordPatch(CamelModel):
    title: str | None = None
    hours: Hours | None = None
    date: datetime.date | None = None
    activity_type: str | None = None
    category: str | None = None
    status: str | None = None
    provider: str | None = None
    notes: str | None = None


class CpdRecordOut(CamelModel):
    id: UUID
    title: str
    hours: float
    date: datetime.date
    activity_type: str
    category: str
    status: str
    source: str
    evidence_strength: str
    provider: str | None = None
    notes: str | None = None
    external_id: str | None = None

    @classmethod
    def of(cls, record: CpdRecord) -> CpdRecordOut:
        return cls(
            id=record.id,
            title=record.title,
            hours=record.hours,
            date=record.date,
            activity_type=record.activity_type,
            category=record.category,
            status=record.status,
            source=record.source,
            evidence_strength=record.evidence_strength.label,
            provider=record.provider,
            notes=record.notes,
            external_id=record.external_id,
        )


class EvidenceIn(CamelModel):
    file_name: str
    file_type: str
    kind: str = "other"


class EvidenceOut(CamelModel):
    id: UUID
    file_name: str
    file_type: str
    kind: str
    status: str
    cpd_record_id: UUID | None = None

    @classmethod
    def of(cls, evidence: Evidence) -> EvidenceOut:
        return cls(
            id=evidence.id,
            file_name=evidence.file_name,
            file_type=evidence.file_type,
            kind=evidence.kind,
            status=evidence.status,
            cpd_record_id=evidence.cpd_record_id,
        )


class EvidenceAttachOut(CamelModel):
    evidence: EvidenceOut
    evidence_strength: str


@router.post(
    "/v1/cpd-records", response_model=CpdRecordOut, status_code=status.HTTP_201_CREATED
)
def create_cpd_record(
    body: CpdRecordIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> CpdRecordOut:
    record = _records.create_record(
        principal.user_id,
        title=body.title,
        hours=body.hours,
        date=body.date,
        activity_type=body.activity_type,
        category=body.category,
        status=body.status,
        provider=body.provider,
        notes=body.notes,
        external_id=body.external_id,
    )
    return CpdRecordOut.of(record)


@router.get("/v1/cpd-records/{record_id}", response_model=CpdRecordOut)
def get_cpd_record(
    record_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> CpdRecordOut:
    return CpdRecordOut.of(_records.get_record(principal.user_id, record_id))


@router.patch("/v1/cpd-records/{record_id}", response_model=CpdRecordOut)
def update_cpd_record(
    record_id: UUID,
    body: CpdRecordPatch,
    principal: Annotated[Principal, Depends(require_user)],
) -> CpdRecordOut:
    record = _records.update_record(
        principal.user_id, record_id, **body.model_dump(exclude_unset=True)
    )
    return CpdRecordOut.of(record)


@router.delete("/v1/cpd-records/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_cpd_record(
    record_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> Response:
    _records.delete_record(principal.user_id, record_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/v1/cpd-records/{record_id}/evidence",
    response_model=EvidenceAttachOut,
    status_code=status.HTTP_201_CREATED,
)
def attach_evidence(
    record_id: UUID,
    body: EvidenceIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> EvidenceAttachOut:
    evidence, record = _records.attach_evidence(
        principal.user_id,
        record_id,
        file_name=body.file_name,
        file_type=body.file_type,
        kind=body.kind,
    )
    return EvidenceAttachOut(
        evidence=EvidenceOut.of(evidence),
        evidence_strength=record.evidence_strength.label,
    )


@router.delete("/v1/evidence/{evidence_id}", response_model=EvidenceOut)
def delete_evidence(
    evidence_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> EvidenceOut:
    return EvidenceOut.of(_records.remove_evidence(principal.user_id, evidence_id))
