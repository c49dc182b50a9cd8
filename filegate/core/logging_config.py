"""
Structured logging configuration.

structlog renders every record, including those from modules that use
plain ``logging.getLogger`` (storage, tasks, auth dependencies), through a
``ProcessorFormatter`` on the root handler. Production emits one JSON
object per line; development emits coloured console output.

Every entry carries the service identity and whatever request context
(correlation id, caller id, container) is bound for the current request.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from filegate.config import settings

REDACTED = "***REDACTED***"

# Substrings of event keys whose values never reach the logs
SENSITIVE_KEY_PARTS = frozenset({
    "token",
    "secret",
    "password",
    "authorization",
    "credential",
    "certificate",
})

# Third-party loggers and the level they are held at
QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "httpx": logging.WARNING,
    "multipart": logging.WARNING,
    "celery": logging.INFO,
}


def add_service_info(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["service"] = settings.app_name
    event_dict["version"] = settings.app_version
    event_dict["environment"] = settings.environment
    return event_dict


def add_request_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Merge the bound request context.

    Keys passed explicitly to the log call take precedence.
    """
    from filegate.core.context import get_request_context

    for key, value in get_request_context().items():
        event_dict.setdefault(key, value)

    return event_dict


def redact_sensitive_values(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    for key in event_dict:
        lowered = key.lower()
        if any(part in lowered for part in SENSITIVE_KEY_PARTS):
            event_dict[key] = REDACTED
    return event_dict


def _renderer() -> Processor:
    if settings.log_format == "json" or settings.is_production:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging() -> None:
    """Route structlog and stdlib logging through one structured handler."""
    pre_chain: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_service_info,
        add_request_context,
        redact_sensitive_values,
    ]

    structlog.configure(
        processors=pre_chain + [
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                _renderer(),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(settings.log_level.upper())

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    structlog.get_logger(__name__).info(
        "logging_configured",
        log_level=settings.log_level,
        log_format=settings.log_format,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("file_uploaded", container=container, file_name=name)
    """
    return structlog.get_logger(name)
