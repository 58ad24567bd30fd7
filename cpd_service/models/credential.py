from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class RuleRequirements:
    """Numeric CPD requirements for one credential cycle."""

    hours_required: float = 0.0
    ethics_hours: float = 0.0
    structured_hours: float = 0.0
    cycle_length_years: int = 1
    category_rules: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class Credential:
    """Professional designation (e.g. CFP). Immutable reference data."""

    id: UUID
    name: str
    body: str
    region: str  # ISO country code of the issuing body, e.g. US, GB
    vertical: str  # financial_advice|accounting|...
    hours_required: float = 0.0
    ethics_hours: float = 0.0
    structured_hours: float = 0.0
    cycle_length_years: int = 1
    category_rules: dict[str, Any] | None = None
    active: bool = True

    @staticmethod
    def new(
        *,
        name: str,
        body: str,
        region: str,
        vertical: str = "financial_advice",
        hours_required: float = 0.0,
        ethics_hours: float = 0.0,
        structured_hours: float = 0.0,
        cycle_length_years: int = 1,
        category_rules: dict[str, Any] | None = None,
    ) -> Credential:
        return Credential(
            id=uuid4(),
            name=name,
            body=body,
            region=region.upper(),
            vertical=vertical,
            hours_required=hours_required,
            ethics_hours=ethics_hours,
            structured_hours=structured_hours,
            cycle_length_years=cycle_length_years,
            category_rules=category_rules,
        )

    def base_rules(self) -> RuleRequirements:
        return RuleRequirements(
            hours_required=self.hours_required,
            ethics_hours=self.ethics_hours,
            structured_hours=self.structured_hours,
            cycle_length_years=self.cycle_length_years,
            category_rules=self.category_rules,
        )


@dataclass(frozen=True, slots=True)
class RulePack:
    """Versioned, date-scoped rule set for a credential.

    effective_to is inclusive; None marks the open ("current") pack.
    """

    id: UUID
    credential_id: UUID
    version: int
    name: str
    rules: dict[str, Any]
    effective_from: date
    effective_to: date | None = None
    changelog: str | None = None

    @staticmethod
    def new(
        *,
        credential_id: UUID,
        version: int,
        name: str,
        rules: dict[str, Any],
        effective_from: date,
        effective_to: date | None = None,
        changelog: str | None = None,
    ) -> RulePack:
        return RulePack(
            id=uuid4(),
            credential_id=credential_id,
            version=version,
            name=name,
            rules=rules,
            effective_from=effective_from,
            effective_to=effective_to,
            changelog=changelog,
        )

    def covers(self, as_of: date) -> bool:
        if as_of < self.effective_from:
            return False
        return self.effective_to is None or self.effective_to >= as_of


@dataclass(frozen=True, slots=True)
class ResolvedRulePack:
    """Result of rule pack resolution.

    Credentials without an applicable pack resolve to their base rules as
    an implicit version 0 (source="credential_defaults").
    """

    credential_id: UUID
    source: str  # rule_pack|credential_defaults
    version: int
    rules: RuleRequirements
    pack_id: UUID | None = None
    name: str | None = None
    effective_from: date | None = None
    effective_to: date | None = None


@dataclass(frozen=True, slots=True)
class UserCredential:
    """A user's holding of one credential."""

    id: UUID
    user_id: str
    credential_id: UUID
    jurisdiction: str | None = None  # state/province code, e.g. CA, ON
    renewal_deadline: datetime | None = None
    hours_completed: float = 0.0  # self-reported at onboarding
    is_primary: bool = False

    @staticmethod
    def new(
        *,
        user_id: str,
        credential_id: UUID,
        jurisdiction: str | None = None,
        renewal_deadline: datetime | None = None,
        hours_completed: float = 0.0,
        is_primary: bool = False,
    ) -> UserCredential:
        return UserCredential(
            id=uuid4(),
            user_id=user_id,
            credential_id=credential_id,
            jurisdiction=jurisdiction.upper() if jurisdiction else None,
            renewal_deadline=renewal_deadline,
            hours_completed=hours_completed,
            is_primary=is_primary,
        )
