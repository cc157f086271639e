"""
Per-request correlation for the HTTP API.

Binds request_id and correlation_id for the duration of a request so that
every log line written while serving it (view cache hits, ingestion
outcomes, classifier fallbacks) can be joined back to the request. Both IDs
are echoed on the response, along with the server-side handling time.
"""
from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from feedback_intel.core.structured_logging import correlation_id_var, request_id_var

logger = logging.getLogger(__name__)

MAX_INBOUND_ID_LEN = 128
QUIET_PATH_PREFIXES = ("/api/health",)


def _inbound_id(request: Request, header: str) -> str:
    value = request.headers.get(header, "").strip()
    if not value or len(value) > MAX_INBOUND_ID_LEN:
        return uuid.uuid4().hex
    return value


class CorrelationMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        req_id = _inbound_id(request, "x-request-id")
        corr_id = _inbound_id(request, "x-correlation-id")
        path = request.url.path

        rid_token = request_id_var.set(req_id)
        cid_token = correlation_id_var.set(corr_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request_failed",
                extra={"http.method": request.method, "http.path": path,
                       "duration_ms": round((time.perf_counter() - start) * 1000, 2)},
            )
            raise
        finally:
            request_id_var.reset(rid_token)
            correlation_id_var.reset(cid_token)

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        # load balancer probes would drown out dashboard traffic at INFO
        level = logging.DEBUG if path.startswith(QUIET_PATH_PREFIXES) else logging.INFO
        logger.log(
            level,
            "request_completed",
            extra={
                "http.method": request.method,
                "http.path": path,
                "http.status_code": response.status_code,
                "duration_ms": duration_ms,
                "request_id": req_id,
                "correlation_id": corr_id,
            },
        )

        response.headers["x-request-id"] = req_id
        response.headers["x-correlation-id"] = corr_id
        response.headers["x-response-time-ms"] = str(duration_ms)
        return response
