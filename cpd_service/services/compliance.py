"""Per-credential compliance progress.

Counting basis: a completed record that has allocation rows contributes
only the hours allocated to the credential in question.  A completed
record with no allocation rows contributes its full hours to the user's
primary credential and nothing to the others.  The basis is the same
whether the user holds one credential or five.

Onboarding hours (UserCredential.hours_completed) add to the total only;
they carry no ethics/structured breakdown.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from uuid import UUID

from cpd_service.core.errors import NotFoundError
from cpd_service.models.credential import UserCredential
from cpd_service.models.cpd_record import CpdRecord
from cpd_service.models.progress import ComplianceProgress
from cpd_service.repos.store import Store
from cpd_service.services.rule_packs import RulePackResolver

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 86400


def round_half_up(value: float) -> int:
    # round() is banker's rounding; 82.5% must show as 83
    return math.floor(value + 0.5)


def progress_percent(completed: float, required: float) -> int:
    if required <= 0:
        return 0
    return max(0, min(100, round_half_up(100 * completed / required)))


def days_until(deadline: datetime | None, now: datetime) -> int | None:
    if deadline is None:
        return None
    if deadline.tzinfo is None:
        deadline = deadline.replace(tzinfo=timezone.utc)
    return math.ceil((deadline - now).total_seconds() / _SECONDS_PER_DAY)


def primary_of(held: list[UserCredential]) -> UserCredential | None:
    """The flagged primary credential, else the only one held."""
    for uc in held:
        if uc.is_primary:
            return uc
    return held[0] if len(held) == 1 else None


class ComplianceAggregator:
    def __init__(self, store: Store, resolver: RulePackResolver | None = None) -> None:
        self._store = store
        self._resolver = resolver or RulePackResolver(store)

    def _counted_hours(
        self, uc: UserCredential, primary: UserCredential | None
    ) -> list[tuple[CpdRecord, float]]:
        counted: list[tuple[CpdRecord, float]] = []
        for record in self._store.records.list_by_user(uc.user_id):
            if record.status != "completed":
                continue
            rows = self._store.allocations.list_by_record(record.id)
            if rows:
                hours = sum(a.hours for a in rows if a.user_credential_id == uc.id)
                if hours > 0:
                    counted.append((record, hours))
            elif primary is not None and primary.id == uc.id:
                counted.append((record, record.hours))
        return counted

    def _progress(
        self,
        uc: UserCredential,
        primary: UserCredential | None,
        now: datetime,
    ) -> ComplianceProgress:
        credential = self._store.credentials.get(uc.credential_id)
        if credential is None:
            raise NotFoundError("credential not found")
        resolved = self._resolver.resolve(credential.id, now.date())
        rules = resolved.rules

        counted = self._counted_hours(uc, primary)
        logged = sum(h for _, h in counted)
        ethics = sum(h for r, h in counted if r.category == "ethics")
        structured = sum(h for r, h in counted if r.is_structured)
        total = logged + uc.hours_completed

        return ComplianceProgress(
            user_credential_id=uc.id,
            credential_id=credential.id,
            credential_name=credential.name,
            rule_pack_version=resolved.version,
            total_hours_completed=total,
            ethics_hours_completed=ethics,
            structured_hours_completed=structured,
            hours_required=rules.hours_required,
            ethics_required=rules.ethics_hours,
            structured_required=rules.structured_hours,
            progress_percent=progress_percent(total, rules.hours_required),
            total_gap=max(0.0, rules.hours_required - total),
            ethics_gap=max(0.0, rules.ethics_hours - ethics),
            structured_gap=max(0.0, rules.structured_hours - structured),
            days_until_deadline=days_until(uc.renewal_deadline, now),
            is_primary=primary is not None and primary.id == uc.id,
        )

    def compute_progress(
        self, user_id: str, user_credential_id: UUID, now: datetime | None = None
    ) -> ComplianceProgress:
        now = now or datetime.now(timezone.utc)
        uc = self._store.user_credentials.get(user_credential_id)
        if uc is None or uc.user_id != user_id:
            raise NotFoundError("user credential not found")
        held = self._store.user_credentials.list_by_user(user_id)
        return self._progress(uc, primary_of(held), now)

    def compute_all(
        self, user_id: str, now: datetime | None = None
    ) -> list[ComplianceProgress]:
        """Progress for every held credential, primary first."""
        now = now or datetime.now(timezone.utc)
        held = self._store.user_credentials.list_by_user(user_id)
        primary = primary_of(held)
        results = [self._progress(uc, primary, now) for uc in held]
        return sorted(results, key=lambda p: not p.is_primary)

