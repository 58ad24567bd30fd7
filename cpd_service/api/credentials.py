"""Credential holdings of the signed-in user.

- POST   /v1/user-credentials        start tracking a credential
- DELETE /v1/user-credentials/{id}   stop tracking (its allocations go too)
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from cpd_service.api.dependencies import require_user
from cpd_service.api.schemas import CamelModel, Hours
from cpd_service.models.credential import UserCredential
from cpd_service.models.principal import Principal
from cpd_service.repos.store import store
from cpd_service.services.cpd_records import CpdRecordService

router = APIRouter(prefix="/v1/user-credentials", tags=["credentials"])

_records = CpdRecordService(store)


class UserCredentialIn(CamelModel):
    credential_id: UUID
    jurisdiction: str | None = None
    renewal_deadline: datetime | None = None
    hours_completed: Hours = 0.0
    is_primary: bool = False


class UserCredentialOut(CamelModel):
    id: UUID
    credential_id: UUID
    jurisdiction: str | None
    renewal_deadline: datetime | None
    hours_completed: float
    is_primary: bool

    @classmethod
    def of(cls, uc: UserCredential) -> UserCredentialOut:
        return cls(
            id=uc.id,
            credential_id=uc.credential_id,
            jurisdiction=uc.jurisdiction,
            renewal_deadline=uc.renewal_deadline,
            hours_completed=uc.hours_completed,
            is_primary=uc.is_primary,
        )


@router.post("", response_model=UserCredentialOut, status_code=status.HTTP_201_CREATED)
def add_user_credential(
    body: UserCredentialIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> UserCredentialOut:
    uc = _records.add_user_credential(
        principal.user_id,
        body.credential_id,
        jurisdiction=body.jurisdiction,
        renewal_deadline=body.renewal_deadline,
        hours_completed=body.hours_completed,
        is_primary=body.is_primary,
    )
    return UserCredentialOut.of(uc)


@router.delete("/{user_credential_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_user_credential(
    user_credential_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> Response:
    _records.remove_user_credential(principal.user_id, user_credential_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
