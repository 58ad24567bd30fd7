"""Credit views for catalog activities.

GET /v1/activities/{activity_id}/credits answers "what would this
activity earn toward each credential I hold", primary credential first.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends

from cpd_service.api.dependencies import require_user
from cpd_service.api.schemas import CamelModel
from cpd_service.models.activity import CreditView, ResolvedCredit
from cpd_service.models.principal import Principal
from cpd_service.repos.store import store
from cpd_service.services.credit_mappings import CreditMappingResolver

router = APIRouter(prefix="/v1/activities", tags=["activities"])

_resolver = CreditMappingResolver(store)


class ResolvedCreditOut(CamelModel):
    mapping_id: UUID
    country: str
    amount: float
    unit: str
    category: str
    structured: bool
    validation_method: str | None = None

    @classmethod
    def of(cls, credit: ResolvedCredit) -> ResolvedCreditOut:
        return cls(
            mapping_id=credit.mapping_id,
            country=credit.country,
            amount=credit.amount,
            unit=credit.unit,
            category=credit.category,
            structured=credit.structured,
            validation_method=credit.validation_method,
        )


class CreditViewOut(CamelModel):
    user_credential_id: UUID
    credential_id: UUID
    credential_name: str
    region: str
    jurisdiction: str | None
    eligible: bool
    total_credits: float
    credits: list[ResolvedCreditOut]

    @classmethod
    def of(cls, view: CreditView) -> CreditViewOut:
        return cls(
            user_credential_id=view.user_credential_id,
            credential_id=view.credential_id,
            credential_name=view.credential_name,
            region=view.region,
            jurisdiction=view.jurisdiction,
            eligible=view.eligible,
            total_credits=view.total_credits,
            credits=[ResolvedCreditOut.of(c) for c in view.credits],
        )


@router.get("/{activity_id}/credits", response_model=list[CreditViewOut])
def activity_credits(
    activity_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> list[CreditViewOut]:
    views = _resolver.credit_views(activity_id, principal.user_id)
    return [CreditViewOut.of(v) for v in views]
