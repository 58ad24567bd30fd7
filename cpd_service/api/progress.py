"""Compliance progress read models.

- GET /v1/progress                       every held credential, primary first
- GET /v1/progress/{user_credential_id}  one holding

Computed on every request from records, allocations and the rule pack in
force today; nothing here is cached.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends

from cpd_service.api.dependencies import require_user
from cpd_service.api.schemas import CamelModel
from cpd_service.models.principal import Principal
from cpd_service.models.progress import ComplianceProgress
from cpd_service.repos.store import store
from cpd_service.services.compliance import ComplianceAggregator

router = APIRouter(prefix="/v1/progress", tags=["progress"])

_aggregator = ComplianceAggregator(store)


class ProgressOut(CamelModel):
    user_credential_id: UUID
    credential_id: UUID
    credential_name: str
    rule_pack_version: int
    total_hours_completed: float
    ethics_hours_completed: float
    structured_hours_completed: float
    hours_required: float
    ethics_required: float
    structured_required: float
    progress_percent: int
    total_gap: float
    ethics_gap: float
    structured_gap: float
    days_until_deadline: int | None = None
    is_primary: bool

    @classmethod
    def of(cls, p: ComplianceProgress) -> ProgressOut:
        return cls(
            user_credential_id=p.user_credential_id,
            credential_id=p.credential_id,
            credential_name=p.credential_name,
            rule_pack_version=p.rule_pack_version,
            total_hours_completed=p.total_hours_completed,
            ethics_hours_completed=p.ethics_hours_completed,
            structured_hours_completed=p.structured_hours_completed,
            hours_required=p.hours_required,
            ethics_required=p.ethics_required,
            structured_required=p.structured_required,
            progress_percent=p.progress_percent,
            total_gap=p.total_gap,
            ethics_gap=p.ethics_gap,
            structured_gap=p.structured_gap,
            days_until_deadline=p.days_until_deadline,
            is_primary=p.is_primary,
        )


@router.get("", response_model=list[ProgressOut])
def all_progress(
    principal: Annotated[Principal, Depends(require_user)],
) -> list[ProgressOut]:
    return [ProgressOut.of(p) for p in _aggregator.compute_all(principal.user_id)]


@router.get("/{user_credential_id}", response_model=ProgressOut)
def credential_progress(
    user_credential_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> ProgressOut:
    return ProgressOut.of(
        _aggregator.compute_progress(principal.user_id, user_credential_id)
    )
