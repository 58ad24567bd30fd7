"""Split a CPD record's hours across the credentials its owner holds.

Invariant: for every record, the allocated hours sum to at most the
record's hours.  set_allocations validates and replaces inside one
store.atomic() section, so two concurrent writers for the same record
cannot both pass validation against a stale total.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from uuid import UUID

from cpd_service.core.errors import NotFoundError, ValidationError
from cpd_service.core.metrics import ALLOCATION_WRITES
from cpd_service.models.cpd_record import CpdAllocation, CpdRecord
from cpd_service.repos.store import Store

logger = logging.getLogger(__name__)

# Hours are decimals entered by people; 1.1 + 2.2 must not exceed 3.3
HOURS_EPSILON = 1e-9


@dataclass(frozen=True, slots=True)
class AllocationInput:
    user_credential_id: UUID
    hours: float


@dataclass(frozen=True, slots=True)
class AllocationResult:
    record_hours: float
    total_allocated: float
    unallocated: float
    allocations: list[CpdAllocation] = field(default_factory=list)


class AllocationLedger:
    def __init__(self, store: Store) -> None:
        self._store = store

    def _owned_record(self, user_id: str, record_id: UUID) -> CpdRecord:
        record = self._store.records.get(record_id)
        if record is None or record.user_id != user_id:
            raise NotFoundError("CPD record not found")
        return record

    def set_allocations(
        self, user_id: str, record_id: UUID, allocations: list[AllocationInput]
    ) -> AllocationResult:
        """Replace every allocation row of the record.

        Prior rows are untouched when validation fails.  An empty list
        clears the record's allocations.
        """
        try:
            result = self._set_allocations(user_id, record_id, allocations)
        except (NotFoundError, ValidationError) as exc:
            ALLOCATION_WRITES.labels(result="rejected").inc()
            logger.warning(
                "Rejected allocation write record=%s: %s",
                record_id,
                exc,
                extra={"user_id": user_id, "cpd_record_id": str(record_id)},
            )
            raise
        ALLOCATION_WRITES.labels(result="applied").inc()
        return result

    def _set_allocations(
        self, user_id: str, record_id: UUID, allocations: list[AllocationInput]
    ) -> AllocationResult:
        seen: set[UUID] = set()
        for alloc in allocations:
            if not math.isfinite(alloc.hours) or alloc.hours <= 0:
                raise ValidationError("allocated hours must be positive")
            if alloc.user_credential_id in seen:
                raise ValidationError("duplicate credential allocations not allowed")
            seen.add(alloc.user_credential_id)

        with self._store.atomic():
            record = self._owned_record(user_id, record_id)

            for uc_id in seen:
                uc = self._store.user_credentials.get(uc_id)
                if uc is None or uc.user_id != user_id:
                    raise NotFoundError("one or more user credentials not found")

            total = sum(a.hours for a in allocations)
            if total > record.hours + HOURS_EPSILON:
                raise ValidationError(
                    f"allocation exceeds record hours "
                    f"(allocated {total:g}, record {record.hours:g})"
                )

            rows = [
                CpdAllocation.new(
                    cpd_record_id=record_id,
                    user_credential_id=a.user_credential_id,
                    hours=a.hours,
                )
                for a in allocations
            ]
            self._store.allocations.replace_for_record(record_id, rows)

        logger.info(
            "Replaced allocations record=%s rows=%d total=%g",
            record_id,
            len(rows),
            total,
            extra={"user_id": user_id, "cpd_record_id": str(record_id)},
        )
        return AllocationResult(
            record_hours=record.hours,
            total_allocated=total,
            unallocated=max(0.0, record.hours - total),
            allocations=rows,
        )

    def list_by_record(self, user_id: str, record_id: UUID) -> list[CpdAllocation]:
        self._owned_record(user_id, record_id)
        return self._store.allocations.list_by_record(record_id)

    def list_by_credential(
        self, user_id: str, user_credential_id: UUID
    ) -> list[CpdAllocation]:
        uc = self._store.user_credentials.get(user_credential_id)
        if uc is None or uc.user_id != user_id:
            raise NotFoundError("user credential not found")
        return self._store.allocations.list_by_credential(user_credential_id)
