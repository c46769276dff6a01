"""
Structured logging with structlog.

JSON lines when LOG_FORMAT=json, coloured console output otherwise. Any
event key that could hold a bot token is masked before rendering.
"""

import logging
import sys

import structlog

from control_center.config import settings

SENSITIVE_KEYS = frozenset({"token", "encrypted_token", "encryption_key", "authorization"})
REDACTED = "[redacted]"


def redact_sensitive_fields(logger, method_name: str, event_dict: dict) -> dict:
    """structlog processor that masks token-bearing keys."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def setup_logging() -> None:
    """Configure structlog and route stdlib logging to stdout. Call once at startup."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_sensitive_fields,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # SQLAlchemy and uvicorn log through stdlib
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

