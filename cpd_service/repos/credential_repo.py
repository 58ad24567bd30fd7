from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from cpd_service.core.errors import ConflictError
from cpd_service.models.credential import Credential, RulePack, UserCredential


class CredentialRepo(Protocol):
    def get(self, credential_id: UUID) -> Credential | None: ...
    def add(self, credential: Credential) -> None: ...
    def list_all(self) -> list[Credential]: ...


class RulePackRepo(Protocol):
    def get(self, pack_id: UUID) -> RulePack | None: ...
    def add(self, pack: RulePack) -> None: ...
    def update(self, pack: RulePack) -> None: ...
    def list_for_credential(self, credential_id: UUID) -> list[RulePack]: ...
    def list_all(self) -> list[RulePack]: ...


class UserCredentialRepo(Protocol):
    def get(self, user_credential_id: UUID) -> UserCredential | None: ...
    def add(self, user_credential: UserCredential) -> None: ...
    def update(self, user_credential: UserCredential) -> None: ...
    def remove(self, user_credential_id: UUID) -> bool: ...
    def list_by_user(self, user_id: str) -> list[UserCredential]: ...


class InMemoryCredentialRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Credential] = {}

    def get(self, credential_id: UUID) -> Credential | None:
        return self._by_id.get(credential_id)

    def add(self, credential: Credential) -> None:
        if credential.id in self._by_id:
            raise ConflictError("credential already exists")
        self._by_id[credential.id] = credential

    def list_all(self) -> list[Credential]:
        return list(self._by_id.values())


class InMemoryRulePackRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, RulePack] = {}

    def get(self, pack_id: UUID) -> RulePack | None:
        return self._by_id.get(pack_id)

    def add(self, pack: RulePack) -> None:
        # Unique (credential_id, version)
        for existing in self._by_id.values():
            if (
                existing.credential_id == pack.credential_id
                and existing.version == pack.version
            ):
                raise ConflictError(
                    f"rule pack version {pack.version} already exists"
                )
        self._by_id[pack.id] = pack

    def update(self, pack: RulePack) -> None:
        if pack.id not in self._by_id:
            raise KeyError("rule pack not found")
        self._by_id[pack.id] = pack

    def list_for_credential(self, credential_id: UUID) -> list[RulePack]:
        return [p for p in self._by_id.values() if p.credential_id == credential_id]

    def list_all(self) -> list[RulePack]:
        return list(self._by_id.values())


class InMemoryUserCredentialRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, UserCredential] = {}

    def get(self, user_credential_id: UUID) -> UserCredential | None:
        return self._by_id.get(user_credential_id)

    def add(self, user_credential: UserCredential) -> None:
        for uc in self.list_by_user(user_credential.user_id):
            if uc.credential_id == user_credential.credential_id:
                raise ConflictError("credential already held")
        if user_credential.is_primary:
            # One primary per user: demote the previous one
            for uc in self.list_by_user(user_credential.user_id):
                if uc.is_primary:
                    self._by_id[uc.id] = replace(uc, is_primary=False)
        self._by_id[user_credential.id] = user_credential

    def update(self, user_credential: UserCredential) -> None:
        if user_credential.id not in self._by_id:
            raise KeyError("user credential not found")
        self._by_id[user_credential.id] = user_credential

    def remove(self, user_credential_id: UUID) -> bool:
        return self._by_id.pop(user_credential_id, None) is not None

    def list_by_user(self, user_id: str) -> list[UserCredential]:
        return [uc for uc in self._by_id.values() if uc.user_id == user_id]
