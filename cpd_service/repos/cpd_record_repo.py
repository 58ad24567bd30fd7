from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from cpd_service.core.errors import ConflictError
from cpd_service.models.cpd_record import CpdAllocation, CpdRecord, Evidence


class CpdRecordRepo(Protocol):
    def get(self, record_id: UUID) -> CpdRecord | None: ...
    def add(self, record: CpdRecord) -> None: ...
    def update(self, record: CpdRecord) -> None: ...
    def remove(self, record_id: UUID) -> bool: ...
    def list_by_user(self, user_id: str) -> list[CpdRecord]: ...


class AllocationRepo(Protocol):
    def list_by_record(self, record_id: UUID) -> list[CpdAllocation]: ...
    def list_by_credential(self, user_credential_id: UUID) -> list[CpdAllocation]: ...
    def replace_for_record(
        self, record_id: UUID, allocations: list[CpdAllocation]
    ) -> None: ...
    def remove_for_record(self, record_id: UUID) -> int: ...
    def remove_for_credential(self, user_credential_id: UUID) -> int: ...


class EvidenceRepo(Protocol):
    def get(self, evidence_id: UUID) -> Evidence | None: ...
    def add(self, evidence: Evidence) -> None: ...
    def update(self, evidence: Evidence) -> None: ...
    def list_by_record(self, record_id: UUID) -> list[Evidence]: ...
    def unlink_record(self, record_id: UUID) -> int: ...


class InMemoryCpdRecordRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, CpdRecord] = {}

    def get(self, record_id: UUID) -> CpdRecord | None:
        return self._by_id.get(record_id)

    def add(self, record: CpdRecord) -> None:
        if record.id in self._by_id:
            raise ConflictError("record already exists")
        self._by_id[record.id] = record

    def update(self, record: CpdRecord) -> None:
        if record.id not in self._by_id:
            raise KeyError("record not found")
        self._by_id[record.id] = record

    def remove(self, record_id: UUID) -> bool:
        return self._by_id.pop(record_id, None) is not None

    def list_by_user(self, user_id: str) -> list[CpdRecord]:
        return [r for r in self._by_id.values() if r.user_id == user_id]


class InMemoryAllocationRepo:
    """Rows keyed by (record, credential); the key doubles as the unique index."""

    def __init__(self) -> None:
        self._by_key: dict[tuple[UUID, UUID], CpdAllocation] = {}

    def list_by_record(self, record_id: UUID) -> list[CpdAllocation]:
        return [a for a in self._by_key.values() if a.cpd_record_id == record_id]

    def list_by_credential(self, user_credential_id: UUID) -> list[CpdAllocation]:
        return [
            a
            for a in self._by_key.values()
            if a.user_credential_id == user_credential_id
        ]

    def replace_for_record(
        self, record_id: UUID, allocations: list[CpdAllocation]
    ) -> None:
        keys = [(a.cpd_record_id, a.user_credential_id) for a in allocations]
        if len(set(keys)) != len(keys):
            raise ConflictError("duplicate allocation for record and credential")
        self.remove_for_record(record_id)
        for key, allocation in zip(keys, allocations):
            self._by_key[key] = allocation

    def remove_for_record(self, record_id: UUID) -> int:
        doomed = [k for k in self._by_key if k[0] == record_id]
        for k in doomed:
            del self._by_key[k]
        return len(doomed)

    def remove_for_credential(self, user_credential_id: UUID) -> int:
        doomed = [k for k in self._by_key if k[1] == user_credential_id]
        for k in doomed:
            del self._by_key[k]
        return len(doomed)


class InMemoryEvidenceRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Evidence] = {}

    def get(self, evidence_id: UUID) -> Evidence | None:
        return self._by_id.get(evidence_id)

    def add(self, evidence: Evidence) -> None:
        self._by_id[evidence.id] = evidence

    def update(self, evidence: Evidence) -> None:
        if evidence.id not in self._by_id:
            raise KeyError("evidence not found")
        self._by_id[evidence.id] = evidence

    def list_by_record(self, record_id: UUID) -> list[Evidence]:
        return [e for e in self._by_id.values() if e.cpd_record_id == record_id]

    def unlink_record(self, record_id: UUID) -> int:
        linked = self.list_by_record(record_id)
        for e in linked:
            self._by_id[e.id] = replace(
                e,
                cpd_record_id=None,
                status="inbox" if e.status == "assigned" else e.status,
            )
        return len(linked)
