"""Structured logging for the whiteboard service.

structlog renders through the stdlib root handler so uvicorn, httpx and our
own loggers share one stream. Each entry is tagged with ``service`` and,
inside a request, the ``request_id`` bound by ``RequestIdMiddleware``.
Credential-looking fields (tokens, service-role keys, cookies) are masked
before rendering.

Usage::

    from whiteboard.app.observability.logging import configure_logging, get_logger

    configure_logging(level="DEBUG", json_output=False)
    logger = get_logger(__name__)
    logger.info("board_created", board_id=board.id, owner_id=board.owner_id)
"""

from __future__ import annotations

import logging
import os
import sys
from contextvars import ContextVar
from typing import Any

import structlog

SERVICE_NAME = "whiteboard"
REDACTED = "[redacted]"

# Event keys whose values never reach the log stream.
SENSITIVE_KEYS: frozenset[str] = frozenset({
    "authorization",
    "cookie",
    "token",
    "access_token",
    "jwt_secret",
    "service_role_key",
    "supabase_service_role_key",
})

# Bound by RequestIdMiddleware for the lifetime of one request.
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

_configured = False


def _tag_event(logger: Any, method_name: str, event_dict: dict) -> dict:
    event_dict.setdefault("service", SERVICE_NAME)
    rid = request_id_ctx.get()
    if rid is not None:
        event_dict["request_id"] = rid
    return event_dict


def _redact_secrets(logger: Any, method_name: str, event_dict: dict) -> dict:
    for key in SENSITIVE_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def _build_renderer(json_output: bool) -> Any:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(
    *,
    level: str | None = None,
    json_output: bool | None = None,
    force: bool = False,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Log level name. Defaults to LOG_LEVEL env var or INFO.
        json_output: JSON lines when True, console renderer when False.
            Defaults to LOG_FORMAT env var == "json".
        force: Reconfigure even if already configured (tests).
    """
    global _configured
    if _configured and not force:
        return
    _configured = True

    level = level or os.environ.get("LOG_LEVEL", "INFO")
    if json_output is None:
        json_output = os.environ.get("LOG_FORMAT", "json") == "json"

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _tag_event,
            _redact_secrets,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _build_renderer(json_output),
            ],
        ),
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Access lines duplicate RequestLoggingMiddleware; httpx logs every store call.
    for noisy in ("uvicorn.access", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
