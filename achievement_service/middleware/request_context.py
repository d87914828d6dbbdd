"""Request ID assignment and per-request access logging.

Requests run concurrently on one event loop thread, so the current
request ID lives in a ContextVar rather than a thread-local.  A log
record factory copies it onto every LogRecord, which lets an award
log line emitted deep inside award_service be joined back to the HTTP
request that triggered it.
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


def _request_context_factory(*args, **kwargs) -> logging.LogRecord:
    record = _base_record_factory(*args, **kwargs)
    record.request_id = request_id_var.get()  # type: ignore[attr-defined]
    return record


# Filters on the root logger never see records propagated from child
# loggers, so the ID is stamped when the record is created.
# Guard against duplicate installation across module reloads.
if not getattr(_base_record_factory, "stamps_request_id", False):
    _request_context_factory.stamps_request_id = True  # type: ignore[attr-defined]
    logging.setLogRecordFactory(_request_context_factory)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Honour or generate X-Request-ID, log a summary line, echo the ID back."""

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
