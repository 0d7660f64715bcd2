"""Structured logging for the campaign game engine.

Every turn logs with the campaign id and action type bound, so the lines a
single ``process_action`` call produces (narrator fallbacks, recovery
warnings, storage failures) can be grepped together. Development output is
a colored console; production output is one JSON object per line.

Example:
    >>> from crawl_engine.core.logging import get_logger, turn_context
    >>> logger = get_logger(__name__)
    >>> with turn_context(campaign_id=7, action_type="attack"):
    ...     logger.info("Enemy struck", damage=6)
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor


if TYPE_CHECKING:
    from structlog.types import EventDict, WrappedLogger

    from crawl_engine.core.config import Settings


REDACTED = "***"

_SECRET_MARKERS = ("api_key", "secret", "token", "password")

# Chatty HTTP stacks used by the narrator client
_QUIET_LOGGERS = ("httpx", "httpcore", "openai")


# =============================================================================
# Processors
# =============================================================================


def redact_secrets(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Mask values whose key looks like a credential."""
    for key in event_dict:
        if any(marker in key.lower() for marker in _SECRET_MARKERS):
            event_dict[key] = REDACTED
    return event_dict


def _app_name_processor(app_name: str) -> Processor:
    def add_app_name(
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict.setdefault("app", app_name)
        return event_dict

    return add_app_name


# =============================================================================
# Configuration
# =============================================================================


def configure_logging(
    settings: Settings | None = None,
    *,
    level: str | None = None,
    json_format: bool | None = None,
) -> None:
    """Configure structlog and the standard library root logger.

    Explicit keyword arguments win over the values in ``settings``.

    Args:
        settings: Application settings; read from the environment if omitted.
        level: Log level name, e.g. ``"DEBUG"``.
        json_format: Render JSON lines instead of console output.
    """
    if settings is None:
        from crawl_engine.core.config import get_settings

        settings = get_settings()

    level_name = (level or settings.log_level).upper()
    use_json = settings.json_logs if json_format is None else json_format
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _app_name_processor(settings.app_name),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
    ]
    if use_json:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        level=numeric_level,
        stream=sys.stdout,
        force=True,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    return structlog.get_logger(name)


# =============================================================================
# Turn Context
# =============================================================================


def bind_context(**kwargs: Any) -> None:
    """Bind values that every later log entry on this thread carries."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop every bound value."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def turn_context(**kwargs: Any) -> Iterator[None]:
    """Bind values for the duration of one turn.

    Only the keys bound here are removed on exit; context bound by an
    outer caller survives.
    """
    bind_context(**kwargs)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*kwargs)


__all__ = [
    "REDACTED",
    "redact_secrets",
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "turn_context",
]
