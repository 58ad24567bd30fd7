"""Request context middleware: a request ID and a timing line per request.

Issuance, allocation and provider webhook calls log from several
services during one request.  The ID lives in a ContextVar so every one
of those lines carries it without threading it through service
signatures; a ContextVar rather than a thread-local because concurrent
requests share the event-loop thread.

Providers that send X-Request-ID get it echoed back, which lets them
match a webhook delivery to our log lines.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


_base_record_factory = logging.getLogRecordFactory()


def _record_with_request_id(*args, **kwargs) -> logging.LogRecord:
    """Stamp the current request ID on every LogRecord at creation.

    A record factory rather than a filter on the root logger: logger
    filters do not run for records propagated up from child loggers.
    """
    record = _base_record_factory(*args, **kwargs)
    record.request_id = request_id_var.get()  # type: ignore[attr-defined]
    return record


# Guard against re-import installing the factory twice
if not getattr(_base_record_factory, "_stamps_request_id", False):
    _record_with_request_id._stamps_request_id = True  # type: ignore[attr-defined]
    logging.setLogRecordFactory(_record_with_request_id)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request ID, time the request and log one summary line."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_var.set(req_id)

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        logger.info(
            "%s %s -> %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers["X-Request-ID"] = req_id
        return response
