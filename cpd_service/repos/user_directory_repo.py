from __future__ import annotations

from typing import Protocol


class UserDirectory(Protocol):
    """Email to user id lookup, fed by the account system at onboarding.

    Provider completion events identify people by email; this is how they
    are matched to a user.
    """

    def user_id_for(self, email: str) -> str | None: ...
    def register(self, email: str, user_id: str) -> None: ...


class InMemoryUserDirectory:
    def __init__(self) -> None:
        self._by_email: dict[str, str] = {}

    def user_id_for(self, email: str) -> str | None:
        return self._by_email.get(email.strip().lower())

    def register(self, email: str, user_id: str) -> None:
        self._by_email[email.strip().lower()] = user_id
