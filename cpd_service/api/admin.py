from __future__ import annotations

import logging
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, status

from cpd_service.api.dependencies import require_role
from cpd_service.api.schemas import CamelModel, Hours
from cpd_service.models.principal import Principal
from cpd_service.repos.store import store
from cpd_service.services.completion_rules import CompletionRuleEvaluator
from cpd_service.services.credit_mappings import CreditMappingResolver
from cpd_service.services.provider_auth import register_provider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin"])

_mappings = CreditMappingResolver(store)
_evaluator = CompletionRuleEvaluator(store)


class CreditMappingIn(CamelModel):
    country: str
    credit_amount: Hours
    credit_unit: str = "hours"
    credit_category: str = "general"
    structured: bool = True
    validation_method: str | None = None
    state_province: str | None = None
    exclusions: str | None = None
    credential_id: UUID | None = None


class CreditMappingOut(CamelModel):
    id: UUID
    activity_id: UUID
    country: str
    credit_amount: float


class CompletionRuleIn(CamelModel):
    cpd_record_id: UUID
    name: str
    rule_type: str
    config: dict[str, Any] = {}


class CompletionRuleOut(CamelModel):
    id: UUID
    cpd_record_id: UUID
    name: str
    rule_type: str
    config: str


class ProviderIn(CamelModel):
    name: str


class ProviderOut(CamelModel):
    id: UUID
    name: str
    api_key: str  # shown once


@router.post(
    "/activities/{activity_id}/credit-mappings",
    response_model=CreditMappingOut,
    status_code=status.HTTP_201_CREATED,
)
def add_credit_mapping(
    activity_id: UUID,
    body: CreditMappingIn,
    principal: Annotated[Principal, Depends(require_role("admin"))],
) -> CreditMappingOut:
    mapping = _mappings.add_mapping(activity_id, **body.model_dump())
    logger.info("Credit mapping added by user=%s", principal.user_id)
    return CreditMappingOut(
        id=mapping.id,
        activity_id=mapping.activity_id,
        country=mapping.country,
        credit_amount=mapping.credit_amount,
    )


@router.post(
    "/completion-rules",
    response_model=CompletionRuleOut,
    status_code=status.HTTP_201_CREATED,
)
def add_completion_rule(
    body: CompletionRuleIn,
    principal: Annotated[Principal, Depends(require_role("admin"))],
) -> CompletionRuleOut:
    rule = _evaluator.add_rule(
        body.cpd_record_id, name=body.name, rule_type=body.rule_type, config=body.config
    )
    logger.info("Completion rule added by user=%s", principal.user_id)
    return CompletionRuleOut(
        id=rule.id,
        cpd_record_id=rule.cpd_record_id,
        name=rule.name,
        rule_type=rule.rule_type,
        config=rule.config,
    )


@router.post("/providers", response_model=ProviderOut, status_code=status.HTTP_201_CREATED)
def create_provider(
    body: ProviderIn,
    principal: Annotated[Principal, Depends(require_role("admin"))],
) -> ProviderOut:
    with store.atomic():
        provider, api_key = register_provider(store.providers, body.name)
    logger.info("Provider %s registered by user=%s", provider.id, principal.user_id)
    return ProviderOut(id=provider.id, name=provider.name, api_key=api_key)
