from __future__ import annotations

import json
import logging
import math
from uuid import UUID

from cpd_service.core.errors import NotFoundError, ValidationError
from cpd_service.models.activity import CreditMapping, CreditView, ResolvedCredit
from cpd_service.repos.store import Store

logger = logging.getLogger(__name__)

INTL = "INTL"


class MalformedMappingError(ValueError):
    pass


def _parse_state_list(raw: str | None, field_name: str) -> list[str] | None:
    if raw is None or not raw.strip():
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedMappingError(f"{field_name} is not valid JSON") from exc
    if not isinstance(parsed, list) or not all(isinstance(s, str) for s in parsed):
        raise MalformedMappingError(f"{field_name} must be a JSON array of strings")
    return [s.upper() for s in parsed]


def mapping_applies(
    mapping: CreditMapping,
    region: str,
    state: str | None,
    credential_id: UUID | None = None,
) -> bool:
    """Jurisdiction filter for one mapping row.

    Raises MalformedMappingError when a state list cannot be parsed.
    """
    if not mapping.active:
        return False
    if mapping.country != region.upper() and mapping.country != INTL:
        return False
    if mapping.credential_id is not None and mapping.credential_id != credential_id:
        return False

    state_code = state.upper() if state else None
    included = _parse_state_list(mapping.state_province, "state_province")
    if included and state_code not in included:
        return False
    excluded = _parse_state_list(mapping.exclusions, "exclusions")
    if excluded and state_code in excluded:
        return False
    return True


class CreditMappingResolver:
    def __init__(self, store: Store) -> None:
        self._store = store

    def resolve(
        self,
        activity_id: UUID,
        region: str,
        state: str | None = None,
        credential_id: UUID | None = None,
    ) -> list[ResolvedCredit]:
        """Applicable credit rows for one jurisdiction, in stored order.

        Rows are not summed: categories and validation methods can differ
        between a country row and an INTL row.
        """
        self._available_activity(activity_id)
        return self._applicable(activity_id, region, state, credential_id)

    def _available_activity(self, activity_id: UUID) -> None:
        activity = self._store.activities.get(activity_id)
        if activity is None or not activity.is_available:
            raise NotFoundError("activity not found")

    def _applicable(
        self,
        activity_id: UUID,
        region: str,
        state: str | None,
        credential_id: UUID | None,
    ) -> list[ResolvedCredit]:
        resolved: list[ResolvedCredit] = []
        for mapping in self._store.credit_mappings.list_by_activity(activity_id):
            try:
                applies = mapping_applies(mapping, region, state, credential_id)
            except MalformedMappingError as exc:
                logger.warning(
                    "Skipping credit mapping %s for activity %s: %s",
                    mapping.id,
                    activity_id,
                    exc,
                )
                continue
            if applies:
                resolved.append(
                    ResolvedCredit(
                        mapping_id=mapping.id,
                        country=mapping.country,
                        amount=mapping.credit_amount,
                        unit=mapping.credit_unit,
                        category=mapping.credit_category,
                        structured=mapping.structured,
                        validation_method=mapping.validation_method,
                    )
                )
        return resolved

    def credit_views(self, activity_id: UUID, user_id: str) -> list[CreditView]:
        """One view per credential the user holds, primary first."""
        self._available_activity(activity_id)
        views: list[CreditView] = []
        held = sorted(
            self._store.user_credentials.list_by_user(user_id),
            key=lambda uc: not uc.is_primary,
        )
        for uc in held:
            credential = self._store.credentials.get(uc.credential_id)
            if credential is None:
                continue
            credits = self._applicable(
                activity_id, credential.region, uc.jurisdiction, credential.id
            )
            views.append(
                CreditView(
                    user_credential_id=uc.id,
                    credential_id=credential.id,
                    credential_name=credential.name,
                    region=credential.region,
                    jurisdiction=uc.jurisdiction,
                    eligible=bool(credits),
                    total_credits=sum(c.amount for c in credits),
                    credits=credits,
                )
            )
        return views

    def add_mapping(
        self,
        activity_id: UUID,
        *,
        country: str,
        credit_amount: float,
        **kwargs,
    ) -> CreditMapping:
        """Attach a credit row to an activity.

        State lists are checked here so a row that would fail closed at
        resolution time is refused up front.
        """
        if not math.isfinite(credit_amount) or credit_amount <= 0:
            raise ValidationError("credit_amount must be positive")
        if not country.strip():
            raise ValidationError("country must be non-empty")
        mapping = CreditMapping.new(
            activity_id=activity_id, country=country.strip(), credit_amount=credit_amount, **kwargs
        )
        try:
            _parse_state_list(mapping.state_province, "state_province")
            _parse_state_list(mapping.exclusions, "exclusions")
        except MalformedMappingError as exc:
            raise ValidationError(str(exc)) from exc

        with self._store.atomic():
            if self._store.activities.get(activity_id) is None:
                raise NotFoundError("activity not found")
            if mapping.credential_id is not None and (
                self._store.credentials.get(mapping.credential_id) is None
            ):
                raise NotFoundError("credential not found")
            self._store.credit_mappings.add(mapping)
        logger.info(
            "Added credit mapping %s country=%s amount=%g",
            mapping.id,
            mapping.country,
            mapping.credit_amount,
        )
        return mapping
