from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class ComplianceProgress:
    """Read model for one held credential. Derived, never stored."""

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
    is_primary: bool = False
