from __future__ import annotations

from typing import Protocol
from uuid import UUID

from cpd_service.core.errors import ConflictError
from cpd_service.models.certificate import (
    Certificate,
    CompletionEvent,
    ProviderTenant,
)


class CertificateRepo(Protocol):
    def get(self, certificate_id: UUID) -> Certificate | None: ...
    def get_by_code(self, code: str) -> Certificate | None: ...
    def get_active_for_record(self, record_id: UUID) -> Certificate | None: ...
    def get_by_idempotency_key(self, key: str) -> Certificate | None: ...
    def add(self, certificate: Certificate) -> None: ...
    def update(self, certificate: Certificate) -> None: ...


class ProviderRepo(Protocol):
    def get(self, provider_id: UUID) -> ProviderTenant | None: ...
    def add(self, provider: ProviderTenant) -> None: ...
    def list_active(self) -> list[ProviderTenant]: ...


class CompletionEventRepo(Protocol):
    def get_by_key(
        self, provider_id: UUID, idempotency_key: str
    ) -> CompletionEvent | None: ...
    def add(self, event: CompletionEvent) -> None: ...
    def update(self, event: CompletionEvent) -> None: ...


class InMemoryCertificateRepo:
    """Enforces the three uniqueness rules a certificates table carries:
    code, idempotency key, and one active certificate per record.
    """

    def __init__(self) -> None:
        self._by_id: dict[UUID, Certificate] = {}

    def get(self, certificate_id: UUID) -> Certificate | None:
        return self._by_id.get(certificate_id)

    def get_by_code(self, code: str) -> Certificate | None:
        for c in self._by_id.values():
            if c.certificate_code == code:
                return c
        return None

    def get_active_for_record(self, record_id: UUID) -> Certificate | None:
        for c in self._by_id.values():
            if c.cpd_record_id == record_id and c.is_active:
                return c
        return None

    def get_by_idempotency_key(self, key: str) -> Certificate | None:
        for c in self._by_id.values():
            if c.idempotency_key == key:
                return c
        return None

    def add(self, certificate: Certificate) -> None:
        if self.get_by_code(certificate.certificate_code) is not None:
            raise ConflictError("certificate code already exists")
        if (
            certificate.idempotency_key is not None
            and self.get_by_idempotency_key(certificate.idempotency_key) is not None
        ):
            raise ConflictError("idempotency key already used")
        if (
            certificate.cpd_record_id is not None
            and certificate.is_active
            and self.get_active_for_record(certificate.cpd_record_id) is not None
        ):
            raise ConflictError("record already has an active certificate")
        self._by_id[certificate.id] = certificate

    def update(self, certificate: Certificate) -> None:
        if certificate.id not in self._by_id:
            raise KeyError("certificate not found")
        self._by_id[certificate.id] = certificate


class InMemoryProviderRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, ProviderTenant] = {}

    def get(self, provider_id: UUID) -> ProviderTenant | None:
        return self._by_id.get(provider_id)

    def add(self, provider: ProviderTenant) -> None:
        self._by_id[provider.id] = provider

    def list_active(self) -> list[ProviderTenant]:
        return [p for p in self._by_id.values() if p.active]


class InMemoryCompletionEventRepo:
    def __init__(self) -> None:
        self._by_key: dict[tuple[UUID, str], CompletionEvent] = {}

    def get_by_key(
        self, provider_id: UUID, idempotency_key: str
    ) -> CompletionEvent | None:
        return self._by_key.get((provider_id, idempotency_key))

    def add(self, event: CompletionEvent) -> None:
        key = (event.provider_id, event.idempotency_key)
        if key in self._by_key:
            raise ConflictError("idempotency key already used")
        self._by_key[key] = event

    def update(self, event: CompletionEvent) -> None:
        key = (event.provider_id, event.idempotency_key)
        if key not in self._by_key:
            raise KeyError("completion event not found")
        self._by_key[key] = event
