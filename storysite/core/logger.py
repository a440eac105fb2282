"""structlog configuration: JSON lines in production, console output elsewhere."""

from __future__ import annotations

import logging
from typing import Any, Optional

import structlog

from storysite.core.config import get_settings


_CONFIGURED = False
_CONTEXT_KEYS = ("request_id", "account_id", "site_domain")


def _add_default_context(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    del logger, method_name
    for key in _CONTEXT_KEYS:
        event_dict.setdefault(key, None)
    return event_dict


def _renderer(env: str) -> Any:
    if env.lower() in {"prod", "production"}:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


def configure_logging() -> None:
    global _CONFIGURED
    if _CONFIGURED:
        return

    settings = get_settings()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(level=level, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_default_context,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _renderer(settings.env),
        ],
        logger_factory=structlog.PrintLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    configure_logging()
    return structlog.get_logger(name)


def bind_request_context(
    request_id: str,
    account_id: Optional[str] = None,
    site_domain: Optional[str] = None,
) -> None:
    """Attach request-scoped fields to every log line emitted while handling it."""

    structlog.contextvars.bind_contextvars(request_id=request_id, account_id=account_id, site_domain=site_domain)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
