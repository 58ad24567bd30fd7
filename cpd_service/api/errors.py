"""Translate engine errors into HTTP responses.

Services raise the ComplianceError family and stay unaware of HTTP; the
handlers registered here give every router the same mapping.  "Owned by
someone else" arrives as NotFoundError and is answered exactly like a
missing row.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from cpd_service.api.schemas import CompletionCheckOut
from cpd_service.core.errors import (
    ComplianceError,
    ConflictError,
    NotEligibleError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[ComplianceError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ConflictError, status.HTTP_409_CONFLICT),
    (NotEligibleError, 422),
)


def status_for(exc: ComplianceError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


async def compliance_error_handler(request: Request, exc: ComplianceError) -> JSONResponse:
    code = status_for(exc)
    body: dict = {"detail": str(exc)}
    if isinstance(exc, NotEligibleError):
        body["completion"] = CompletionCheckOut.of(exc.evaluation).model_dump(
            mode="json", by_alias=True
        )
    logger.info(
        "%s on %s %s: %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        exc,
        extra={"status_code": code},
    )
    return JSONResponse(status_code=code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ComplianceError, compliance_error_handler)  # type: ignore[arg-type]
