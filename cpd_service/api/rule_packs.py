"""Rule pack listing, resolution and publishing.

- GET  /v1/rule-packs          list packs (optionally one credential)
- GET  /v1/rule-packs/resolve  the pack in force for a credential on a date
- POST /v1/rule-packs          publish the next version (admin)
"""

from __future__ import annotations

from datetime import date
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from cpd_service.api.dependencies import require_role, require_user
from cpd_service.api.schemas import CamelModel
from cpd_service.models.credential import ResolvedRulePack, RulePack
from cpd_service.models.principal import Principal
from cpd_service.repos.store import store
from cpd_service.services.rule_packs import RulePackResolver

router = APIRouter(prefix="/v1/rule-packs", tags=["rule-packs"])

_resolver = RulePackResolver(store)


class RulePackOut(CamelModel):
    id: UUID
    credential_id: UUID
    version: int
    name: str
    rules: dict[str, Any]
    effective_from: date
    effective_to: date | None = None
    changelog: str | None = None

    @classmethod
    def of(cls, pack: RulePack) -> RulePackOut:
        return cls(
            id=pack.id,
            credential_id=pack.credential_id,
            version=pack.version,
            name=pack.name,
            rules=pack.rules,
            effective_from=pack.effective_from,
            effective_to=pack.effective_to,
            changelog=pack.changelog,
        )


class RequirementsOut(CamelModel):
    hours_required: float
    ethics_hours: float
    structured_hours: float
    cycle_length_years: int
    category_rules: dict[str, Any] | None = None


class ResolvedRulePackOut(CamelModel):
    credential_id: UUID
    source: str
    version: int
    rules: RequirementsOut
    pack_id: UUID | None = None
    name: str | None = None
    effective_from: date | None = None
    effective_to: date | None = None

    @classmethod
    def of(cls, resolved: ResolvedRulePack) -> ResolvedRulePackOut:
        r = resolved.rules
        return cls(
            credential_id=resolved.credential_id,
            source=resolved.source,
            version=resolved.version,
            rules=RequirementsOut(
                hours_required=r.hours_required,
                ethics_hours=r.ethics_hours,
                structured_hours=r.structured_hours,
                cycle_length_years=r.cycle_length_years,
                category_rules=r.category_rules,
            ),
            pack_id=resolved.pack_id,
            name=resolved.name,
            effective_from=resolved.effective_from,
            effective_to=resolved.effective_to,
        )


class RulePackPublishIn(CamelModel):
    credential_id: UUID
    name: str
    rules: dict[str, Any]
    effective_from: date
    effective_to: date | None = None
    changelog: str | None = None


@router.get("", response_model=list[RulePackOut])
def list_rule_packs(
    _principal: Annotated[Principal, Depends(require_user)],
    credential_id: Annotated[UUID | None, Query(alias="credentialId")] = None,
) -> list[RulePackOut]:
    return [RulePackOut.of(p) for p in _resolver.list_packs(credential_id)]


@router.get("/resolve", response_model=ResolvedRulePackOut)
def resolve_rule_pack(
    _principal: Annotated[Principal, Depends(require_user)],
    credential_id: Annotated[UUID, Query(alias="credentialId")],
    as_of: Annotated[date | None, Query(alias="asOf")] = None,
) -> ResolvedRulePackOut:
    resolved = _resolver.resolve(credential_id, as_of or date.today())
    return ResolvedRulePackOut.of(resolved)


@router.post("", response_model=RulePackOut, status_code=status.HTTP_201_CREATED)
def publish_rule_pack(
    body: RulePackPublishIn,
    _admin: Annotated[Principal, Depends(require_role("admin"))],
) -> RulePackOut:
    pack = _resolver.publish(
        body.credential_id,
        name=body.name,
        rules=body.rules,
        effective_from=body.effective_from,
        effective_to=body.effective_to,
        changelog=body.changelog,
    )
    return RulePackOut.of(pack)
