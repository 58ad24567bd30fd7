"""Certificate verification and revocation.

- GET  /v1/certificates/verify/{code}   public, no token: employers and
                                        regulators check codes here
- POST /v1/certificates/{id}/revoke     owner revokes a certificate
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends

from cpd_service.api.dependencies import require_user
from cpd_service.api.schemas import CamelModel
from cpd_service.models.certificate import Certificate
from cpd_service.models.principal import Principal
from cpd_service.repos.store import store
from cpd_service.services.issuance import IssuanceService

router = APIRouter(prefix="/v1/certificates", tags=["certificates"])

_issuance = IssuanceService(store)


class CertificateOut(CamelModel):
    id: UUID
    certificate_code: str
    title: str
    hours: float
    category: str
    activity_type: str
    status: str
    credential_name: str | None = None
    cpd_record_id: UUID | None = None
    issued_at: datetime | None = None
    verification_url: str
    metadata: dict[str, Any] = {}

    @classmethod
    def of(cls, certificate: Certificate) -> CertificateOut:
        return cls(
            id=certificate.id,
            certificate_code=certificate.certificate_code,
            title=certificate.title,
            hours=certificate.hours,
            category=certificate.category,
            activity_type=certificate.activity_type,
            status=certificate.status,
            credential_name=certificate.credential_name,
            cpd_record_id=certificate.cpd_record_id,
            issued_at=certificate.issued_at,
            verification_url=certificate.verification_url,
            metadata=certificate.metadata,
        )


class CertificateVerifyOut(CamelModel):
    certificate_code: str
    title: str
    hours: float
    category: str
    credential_name: str | None = None
    issued_at: datetime | None = None
    status: str
    valid: bool


class RevokeIn(CamelModel):
    reason: str | None = None


@router.get("/verify/{code}", response_model=CertificateVerifyOut)
def verify_certificate(code: str) -> CertificateVerifyOut:
    certificate = _issuance.verify(code)
    return CertificateVerifyOut(
        certificate_code=certificate.certificate_code,
        title=certificate.title,
        hours=certificate.hours,
        category=certificate.category,
        credential_name=certificate.credential_name,
        issued_at=certificate.issued_at,
        status=certificate.status,
        valid=certificate.is_active,
    )


@router.post("/{certificate_id}/revoke", response_model=CertificateOut)
def revoke_certificate(
    certificate_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    body: RevokeIn | None = None,
) -> CertificateOut:
    revoked = _issuance.revoke(
        principal.user_id, certificate_id, reason=body.reason if body else None
    )
    return CertificateOut.of(revoked)
