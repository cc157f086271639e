"""
JSON-lines logging for the feedback service.

structlog renders every record, including ones from plain
``logging.getLogger(__name__)`` module loggers, as one JSON object per line
on stderr and in a rotating file. Each line carries the service name and
version, the request/correlation IDs of the HTTP request being served, and
the dashboard view being computed when there is one.
"""
from __future__ import annotations

import logging
import logging.handlers
import os
import sys
import time
from contextvars import ContextVar
from typing import Optional

import structlog

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
view_var: ContextVar[str | None] = ContextVar("view", default=None)

APP_VERSION = "0.4.0"
SERVICE_NAME = "feedback-intel"

# Loggers that chatter at INFO about every outbound call
QUIET_LOGGERS = ("httpcore", "httpx", "openai", "anthropic", "redis", "asyncio", "watchfiles")

_startup_time: float = time.time()


def get_uptime_s() -> float:
    return time.time() - _startup_time


def _inject_context(logger_name: str, method_name: str, event_dict: dict) -> dict:
    """Add service identity plus whichever request and view IDs are bound."""
    event_dict["service"] = SERVICE_NAME
    event_dict["version"] = APP_VERSION

    for key, var in (("request_id", request_id_var), ("correlation_id", correlation_id_var)):
        value = var.get(None)
        if value:
            event_dict[key] = value

    # an explicit extra={"view": ...} wins over the ambient one
    view = view_var.get(None)
    if view and "view" not in event_dict:
        event_dict["view"] = view

    return event_dict


def _lowercase_level(logger_name: str, method_name: str, event_dict: dict) -> dict:
    level = event_dict.get("level")
    if level:
        event_dict["level"] = level.lower()
    return event_dict


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        _lowercase_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        _inject_context,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _rotating_handler(log_dir: str, log_file: str, max_bytes: int,
                      backup_count: int) -> Optional[logging.Handler]:
    try:
        os.makedirs(log_dir, exist_ok=True)
        return logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, log_file),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    except OSError:
        # unwritable log dir: stderr only
        return None


def setup_logging(
    log_dir: str = "logs",
    log_file: str = "feedback_intel.jsonl",
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    log_level: int | str = logging.INFO,
) -> None:
    """Route structlog and stdlib logging through one JSON formatter.

    Safe to call again (tests do); existing root handlers are replaced.
    """
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(default=str),
        ],
    )

    handlers = [logging.StreamHandler(sys.stderr)]
    file_handler = _rotating_handler(log_dir, log_file, max_bytes, backup_count)
    if file_handler is not None:
        handlers.append(file_handler)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
