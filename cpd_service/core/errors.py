"""Error taxonomy shared by the compliance engine services.

Every error is recoverable at the caller's boundary.  The API layer maps
them to HTTP statuses in app-level exception handlers; the worker logs
them.  Services raise these before or inside ``store.atomic()`` so a
failure never leaves a partial write behind.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cpd_service.models.completion import CompletionCheckResult


class ComplianceError(Exception):
    """Base class for engine errors."""


class NotFoundError(ComplianceError):
    """Entity missing, or owned by someone else (reported the same way)."""


class ValidationError(ComplianceError):
    """Malformed input: over-allocation, non-positive hours, bad rule config."""


class ConflictError(ComplianceError):
    """Uniqueness violated: pack version, allocation key, idempotency key."""


class NotEligibleError(ComplianceError):
    """Certificate requested before every completion rule passes."""

    def __init__(self, message: str, evaluation: CompletionCheckResult) -> None:
        super().__init__(message)
        self.evaluation = evaluation
