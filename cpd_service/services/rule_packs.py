"""Rule pack resolution and publishing.

Packs for a credential form consecutive half-open intervals
[effective_from, next_effective_from).  Dates are whole days, so the
stored inclusive effective_to of a closed pack is next_from - 1 day.

Lookup sorts packs by (effective_from, version), bisects on as_of and
walks back to the first pack that has not expired.  Nothing is cached:
a pack published a moment ago is visible to the next resolve.
"""

from __future__ import annotations

import bisect
import logging
import math
from dataclasses import replace
from datetime import date, timedelta
from typing import Any
from uuid import UUID

from cpd_service.core.errors import NotFoundError, ValidationError
from cpd_service.models.credential import (
    Credential,
    ResolvedRulePack,
    RulePack,
    RuleRequirements,
)
from cpd_service.repos.store import Store

logger = logging.getLogger(__name__)

_NUMERIC_KEYS = ("hours_required", "ethics_hours", "structured_hours")


def requirements_from(rules: dict[str, Any], credential: Credential) -> RuleRequirements:
    """Overlay a pack's rule document on the credential's base rules."""
    base = credential.base_rules()
    values: dict[str, Any] = {}
    for key in _NUMERIC_KEYS:
        raw = rules.get(key)
        if (
            isinstance(raw, (int, float)) and not isinstance(raw, bool)
            and math.isfinite(raw) and raw >= 0
        ):
            values[key] = float(raw)
    cycle = rules.get("cycle_length_years")
    if isinstance(cycle, int) and not isinstance(cycle, bool) and cycle > 0:
        values["cycle_length_years"] = cycle
    category_rules = rules.get("category_rules")
    if isinstance(category_rules, dict):
        values["category_rules"] = category_rules
    return replace(base, **values)


class RulePackResolver:
    def __init__(self, store: Store) -> None:
        self._store = store

    def _credential(self, credential_id: UUID) -> Credential:
        credential = self._store.credentials.get(credential_id)
        if credential is None:
            raise NotFoundError("credential not found")
        return credential

    def _ordered(self, credential_id: UUID) -> list[RulePack]:
        return sorted(
            self._store.rule_packs.list_for_credential(credential_id),
            key=lambda p: (p.effective_from, p.version),
        )

    def resolve(self, credential_id: UUID, as_of: date) -> ResolvedRulePack:
        credential = self._credential(credential_id)
        packs = self._ordered(credential_id)

        starts = [p.effective_from for p in packs]
        idx = bisect.bisect_right(starts, as_of)
        # packs[:idx] all start on or before as_of; latest start wins, ties
        # broken by the higher version (sorted last).
        for pack in reversed(packs[:idx]):
            if pack.effective_to is None or pack.effective_to >= as_of:
                return ResolvedRulePack(
                    credential_id=credential_id,
                    source="rule_pack",
                    version=pack.version,
                    rules=requirements_from(pack.rules, credential),
                    pack_id=pack.id,
                    name=pack.name,
                    effective_from=pack.effective_from,
                    effective_to=pack.effective_to,
                )

        return ResolvedRulePack(
            credential_id=credential_id,
            source="credential_defaults",
            version=0,
            rules=credential.base_rules(),
            name=credential.name,
        )

    def list_packs(self, credential_id: UUID | None = None) -> list[RulePack]:
        if credential_id is not None:
            self._credential(credential_id)
            packs = self._store.rule_packs.list_for_credential(credential_id)
        else:
            packs = self._store.rule_packs.list_all()
        return sorted(packs, key=lambda p: (str(p.credential_id), -p.version))

    def publish(
        self,
        credential_id: UUID,
        *,
        name: str,
        rules: dict[str, Any],
        effective_from: date,
        effective_to: date | None = None,
        changelog: str | None = None,
    ) -> RulePack:
        """Publish the next version and close the currently open pack."""
        if not name.strip():
            raise ValidationError("name must be non-empty")
        if effective_to is not None and effective_to < effective_from:
            raise ValidationError("effective_to must not precede effective_from")

        with self._store.atomic():
            self._credential(credential_id)
            existing = self._store.rule_packs.list_for_credential(credential_id)
            next_version = max((p.version for p in existing), default=0) + 1

            for pack in existing:
                if pack.effective_to is not None:
                    continue
                if pack.effective_from >= effective_from:
                    raise ValidationError(
                        "effective_from must be after the current pack's start "
                        f"({pack.effective_from.isoformat()})"
                    )
                closed = replace(
                    pack, effective_to=effective_from - timedelta(days=1)
                )
                self._store.rule_packs.update(closed)
                logger.info(
                    "Closed rule pack credential=%s version=%d effective_to=%s",
                    credential_id,
                    pack.version,
                    closed.effective_to,
                )

            pack = RulePack.new(
                credential_id=credential_id,
                version=next_version,
                name=name.strip(),
                rules=rules,
                effective_from=effective_from,
                effective_to=effective_to,
                changelog=changelog,
            )
            self._store.rule_packs.add(pack)

        logger.info(
            "Published rule pack credential=%s version=%d effective_from=%s",
            credential_id,
            pack.version,
            effective_from,
        )
        return pack
