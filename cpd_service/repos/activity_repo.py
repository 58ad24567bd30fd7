from __future__ import annotations

from typing import Protocol
from uuid import UUID

from cpd_service.models.activity import Activity, CreditMapping


class ActivityRepo(Protocol):
    def get(self, activity_id: UUID) -> Activity | None: ...
    def add(self, activity: Activity) -> None: ...


class CreditMappingRepo(Protocol):
    def add(self, mapping: CreditMapping) -> None: ...
    def list_by_activity(self, activity_id: UUID) -> list[CreditMapping]: ...


class InMemoryActivityRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Activity] = {}

    def get(self, activity_id: UUID) -> Activity | None:
        return self._by_id.get(activity_id)

    def add(self, activity: Activity) -> None:
        self._by_id[activity.id] = activity


class InMemoryCreditMappingRepo:
    def __init__(self) -> None:
        # dicts keep insertion order, which is the "stored order" callers see
        self._by_id: dict[UUID, CreditMapping] = {}

    def add(self, mapping: CreditMapping) -> None:
        self._by_id[mapping.id] = mapping

    def list_by_activity(self, activity_id: UUID) -> list[CreditMapping]:
        return [m for m in self._by_id.values() if m.activity_id == activity_id]
