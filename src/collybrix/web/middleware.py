"""Per-request logging for the Collybrix API.

Each request gets a correlation id (taken from ``X-Correlation-ID`` or
freshly generated) that is stamped on every log event and echoed back on
the response. Exceptions that escape a route become the 500 error
envelope here, so clients never see a bare traceback.
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware

from collybrix.logging import clear_request_context, get_logger, set_correlation_id
from collybrix.web.envelope import internal_error_response

if TYPE_CHECKING:
    from starlette.middleware.base import RequestResponseEndpoint
    from starlette.requests import Request
    from starlette.responses import Response

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log start and outcome of every request and convert crashes to 500s."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        set_correlation_id(correlation_id)
        log = logger.bind(method=request.method, path=request.url.path)
        started = time.perf_counter()

        log.info("request_started", query=request.url.query or None)
        try:
            response = await call_next(request)
            log.info(
                "request_completed",
                status_code=response.status_code,
                duration_ms=_elapsed_ms(started),
            )
        except Exception as exc:
            log.exception("request_failed", error=str(exc), duration_ms=_elapsed_ms(started))
            response = internal_error_response(exc)
        finally:
            set_correlation_id(None)
            clear_request_context()

        response.headers[CORRELATION_HEADER] = correlation_id
        return response
