"""Process-wide in-memory store.

Groups the in-memory repos behind one lock so the engine's multi-row
writes are all-or-nothing:

  with store.atomic():
      store.records.add(record)
      store.certificates.add(cert)   # ConflictError -> record add undone

atomic() serialises writers (the lock is re-entrant, so services can
nest sections) and snapshots every repo's tables on entry.  When an
exception escapes a section the tables are restored to the snapshot.
Repo values are frozen dataclasses, so a shallow copy of each table is a
complete snapshot.

Reads outside atomic() see the last committed state of each table.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any
from uuid import UUID

from cpd_service.repos.activity_repo import (
    InMemoryActivityRepo,
    InMemoryCreditMappingRepo,
)
from cpd_service.repos.certificate_repo import (
    InMemoryCertificateRepo,
    InMemoryCompletionEventRepo,
    InMemoryProviderRepo,
)
from cpd_service.repos.completion_repo import (
    InMemoryCompletionRuleRepo,
    InMemoryQuizAttemptRepo,
    InMemoryQuizRepo,
)
from cpd_service.repos.cpd_record_repo import (
    InMemoryAllocationRepo,
    InMemoryCpdRecordRepo,
    InMemoryEvidenceRepo,
)
from cpd_service.repos.credential_repo import (
    InMemoryCredentialRepo,
    InMemoryRulePackRepo,
    InMemoryUserCredentialRepo,
)
from cpd_service.repos.user_directory_repo import InMemoryUserDirectory

logger = logging.getLogger(__name__)

_Snapshot = list[tuple[object, dict[str, dict[Any, Any]]]]


class Store:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._reset()

    def _reset(self) -> None:
        self.credentials = InMemoryCredentialRepo()
        self.rule_packs = InMemoryRulePackRepo()
        self.user_credentials = InMemoryUserCredentialRepo()
        self.records = InMemoryCpdRecordRepo()
        self.allocations = InMemoryAllocationRepo()
        self.evidence = InMemoryEvidenceRepo()
        self.activities = InMemoryActivityRepo()
        self.credit_mappings = InMemoryCreditMappingRepo()
        self.completion_rules = InMemoryCompletionRuleRepo()
        self.quizzes = InMemoryQuizRepo()
        self.quiz_attempts = InMemoryQuizAttemptRepo()
        self.certificates = InMemoryCertificateRepo()
        self.providers = InMemoryProviderRepo()
        self.completion_events = InMemoryCompletionEventRepo()
        self.users = InMemoryUserDirectory()

    def _repos(self) -> list[object]:
        return [
            self.credentials,
            self.rule_packs,
            self.user_credentials,
            self.records,
            self.allocations,
            self.evidence,
            self.activities,
            self.credit_mappings,
            self.completion_rules,
            self.quizzes,
            self.quiz_attempts,
            self.certificates,
            self.providers,
            self.completion_events,
            self.users,
        ]

    def _snapshot(self) -> _Snapshot:
        return [
            (
                repo,
                {
                    name: dict(table)
                    for name, table in vars(repo).items()
                    if isinstance(table, dict)
                },
            )
            for repo in self._repos()
        ]

    @staticmethod
    def _restore(snapshot: _Snapshot) -> None:
        for repo, tables in snapshot:
            for name, table in tables.items():
                setattr(repo, name, table)

    @contextmanager
    def atomic(self) -> Iterator[Store]:
        with self._lock:
            snapshot = self._snapshot()
            try:
                yield self
            except BaseException:
                self._restore(snapshot)
                logger.debug("Rolled back store section")
                raise

    def clear(self) -> None:
        with self._lock:
            self._reset()

    # ---- cascades ----

    def delete_record(self, record_id: UUID) -> bool:
        """Remove a record with its allocations and completion rules.

        Evidence survives, unlinked back to the owner's inbox.
        """
        with self.atomic():
            if not self.records.remove(record_id):
                return False
            self.allocations.remove_for_record(record_id)
            self.completion_rules.remove_for_record(record_id)
            self.evidence.unlink_record(record_id)
            return True

    def remove_user_credential(self, user_credential_id: UUID) -> bool:
        with self.atomic():
            if not self.user_credentials.remove(user_credential_id):
                return False
            self.allocations.remove_for_credential(user_credential_id)
            return True


store = Store()
