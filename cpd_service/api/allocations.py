"""Allocation ledger endpoints.

- GET /v1/allocations?recordId=...           rows of one record
- GET /v1/allocations?userCredentialId=...   rows credited to one holding
- PUT /v1/allocations                         replace a record's rows
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from cpd_service.api.dependencies import require_user
from cpd_service.api.schemas import CamelModel, Hours
from cpd_service.models.cpd_record import CpdAllocation
from cpd_service.models.principal import Principal
from cpd_service.repos.store import store
from cpd_service.services.allocation_ledger import AllocationInput, AllocationLedger

router = APIRouter(prefix="/v1/allocations", tags=["allocations"])

_ledger = AllocationLedger(store)


class AllocationOut(CamelModel):
    id: UUID
    cpd_record_id: UUID
    user_credential_id: UUID
    hours: float

    @classmethod
    def of(cls, row: CpdAllocation) -> AllocationOut:
        return cls(
            id=row.id,
            cpd_record_id=row.cpd_record_id,
            user_credential_id=row.user_credential_id,
            hours=row.hours,
        )


class AllocationItemIn(CamelModel):
    user_credential_id: UUID
    hours: Hours


class AllocationSetIn(CamelModel):
    cpd_record_id: UUID
    allocations: list[AllocationItemIn]


class AllocationSetOut(CamelModel):
    record_hours: float
    total_allocated: float
    unallocated: float
    allocations: list[AllocationOut]


@router.get("", response_model=list[AllocationOut])
def list_allocations(
    principal: Annotated[Principal, Depends(require_user)],
    record_id: Annotated[UUID | None, Query(alias="recordId")] = None,
    user_credential_id: Annotated[UUID | None, Query(alias="userCredentialId")] = None,
) -> list[AllocationOut]:
    if (record_id is None) == (user_credential_id is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="exactly one of recordId or userCredentialId is required",
        )
    if record_id is not None:
        rows = _ledger.list_by_record(principal.user_id, record_id)
    else:
        rows = _ledger.list_by_credential(principal.user_id, user_credential_id)  # type: ignore[arg-type]
    return [AllocationOut.of(r) for r in rows]


@router.put("", response_model=AllocationSetOut)
def set_allocations(
    body: AllocationSetIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> AllocationSetOut:
    result = _ledger.set_allocations(
        principal.user_id,
        body.cpd_record_id,
        [AllocationInput(a.user_credential_id, a.hours) for a in body.allocations],
    )
    return AllocationSetOut(
        record_hours=result.record_hours,
        total_allocated=result.total_allocated,
        unallocated=result.unallocated,
        allocations=[AllocationOut.of(r) for r in result.allocations],
    )
