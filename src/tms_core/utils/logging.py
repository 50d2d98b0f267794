"""
utils/logging.py — structlog setup shared by the API and the CLI.

Events are snake_case names with key/value context (`load_start`,
`profile_hydrated`, `offer_processed`). Session identifiers are bound once
per request by the API middleware and merged into every line through
structlog's contextvars. Token and password values never reach the output.

Usage:
    from tms_core.utils.logging import configure_logging, get_logger

    configure_logging()
    log = get_logger(__name__)
    log.bind(user_id=user.id).info("load_start", role=user.role)
"""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from typing import Any

import structlog

from tms_shared.config import settings

REDACTED = "[redacted]"
SECRET_KEYS = frozenset(
    {"access_token", "refresh_token", "token", "password", "confirm_password", "authorization"}
)

# Chatty per-request loggers of the Supabase HTTP stack
_QUIET_LOGGERS = ("httpx", "httpcore", "hpack")


def redact_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    for key in SECRET_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def configure_logging(
    log_level: str | None = None,
    log_format: str | None = None,
) -> None:
    """
    Configure structlog and the stdlib root logger. Safe to call repeatedly.

    Args:
        log_level:  Override settings.log_level.
        log_format: Override settings.log_format ("json" | "console").
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    fmt = log_format or settings.log_format

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    renderer: Any
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str, **initial_values: Any) -> structlog.BoundLogger:
    """Return a structlog logger, pre-bound with *initial_values* if given."""
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger  # type: ignore[return-value]
