"""
FastAPI exception handler for FeedbackIntelError.

The registry entry for the error's code decides status, message and log
level. Internal detail and context go to the log only; the response body
carries the safe message plus the request_id to quote when reporting it.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from feedback_intel.core.errors import FeedbackIntelError
from feedback_intel.core.errors.registry import ErrorEntry, error_registry
from feedback_intel.core.structured_logging import request_id_var

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _body(code: str, title: str, message: str, retryable: bool, remediation: list) -> dict:
    return {
        "error": {
            "code": code,
            "title": title,
            "message": message,
            "retryable": retryable,
            "remediation": remediation,
            "request_id": request_id_var.get(None),
        }
    }


async def feedback_intel_error_handler(request: Request, exc: FeedbackIntelError) -> JSONResponse:
    entry: ErrorEntry | None = error_registry.get(exc.code)
    log_extra = {
        "error.code": exc.code,
        "error.kind": type(exc).__name__,
        "error.message": exc.detail,
        "http.path": request.url.path,
        **{f"error.ctx.{k}": v for k, v in exc.context.items()},
    }

    if entry is None:
        logger.error("unregistered_error_code", extra=log_extra)
        return JSONResponse(
            status_code=500,
            content=_body(exc.code, "Internal error", "An unexpected error occurred.", False, []),
        )

    log_extra["error.retryable"] = entry.retryable
    logger.log(_LOG_LEVELS.get(entry.severity, logging.ERROR), entry.title, extra=log_extra)

    return JSONResponse(
        status_code=entry.http_status,
        content=_body(entry.code, entry.title, entry.safe_message, entry.retryable, entry.remediation),
    )
