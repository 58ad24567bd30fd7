from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Activity:
    id: UUID
    title: str
    publish_status: str = "draft"  # draft|published|archived
    active: bool = True

    @staticmethod
    def new(*, title: str, publish_status: str = "draft") -> Activity:
        return Activity(id=uuid4(), title=title, publish_status=publish_status)

    @property
    def is_available(self) -> bool:
        return self.active and self.publish_status == "published"


@dataclass(frozen=True, slots=True)
class CreditMapping:
    """How many credits an activity earns in one jurisdiction.

    state_province and exclusions are JSON string arrays as stored; a
    mapping whose lists cannot be parsed never applies.
    """

    id: UUID
    activity_id: UUID
    country: str  # ISO code, or INTL for every region
    credit_amount: float
    credit_unit: str = "hours"
    credit_category: str = "general"
    structured: bool = True
    validation_method: str | None = None
    state_province: str | None = None
    exclusions: str | None = None
    credential_id: UUID | None = None
    active: bool = True

    @staticmethod
    def new(
        *,
        activity_id: UUID,
        country: str,
        credit_amount: float,
        credit_unit: str = "hours",
        credit_category: str = "general",
        structured: bool = True,
        validation_method: str | None = None,
        state_province: str | None = None,
        exclusions: str | None = None,
        credential_id: UUID | None = None,
    ) -> CreditMapping:
        return CreditMapping(
            id=uuid4(),
            activity_id=activity_id,
            country=country.upper(),
            credit_amount=credit_amount,
            credit_unit=credit_unit,
            credit_category=credit_category,
            structured=structured,
            validation_method=validation_method,
            state_province=state_province,
            exclusions=exclusions,
            credential_id=credential_id,
        )


@dataclass(frozen=True, slots=True)
class ResolvedCredit:
    mapping_id: UUID
    country: str
    amount: float
    unit: str
    category: str
    structured: bool
    validation_method: str | None = None


@dataclass(frozen=True, slots=True)
class CreditView:
    """Credits an activity would earn toward one of the user's credentials."""

    user_credential_id: UUID
    credential_id: UUID
    credential_name: str
    region: str
    jurisdiction: str | None
    eligible: bool
    total_credits: float
    credits: list[ResolvedCredit] = field(default_factory=list)
