"""
Structured logging configuration for the donation portal client.

Centralizes structlog setup with request context tracking (used by the route
gate middleware), environment fields, and masking of credentials that pass
through the HTTP client.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog
from structlog.types import EventDict, Processor

# Context variable for request-scoped data
request_context: ContextVar[Optional[Dict[str, Any]]] = ContextVar(
    "request_context", default=None
)

SENSITIVE_KEYS = (
    "password",
    "cookie",
    "authorization",
    "access_token",
    "refresh_token",
    "secret",
)


class RequestContextProcessor:
    """Add request-scoped context (path, method) to every log entry."""

    def __call__(
        self, logger: Any, method_name: str, event_dict: EventDict
    ) -> EventDict:
        ctx = request_context.get()
        if ctx is not None:
            for key, value in ctx.items():
                event_dict.setdefault(key, value)
        return event_dict


class EnvironmentProcessor:
    """Add app environment and version to log entries."""

    def __init__(self, app_env: str, app_version: str):
        self.app_env = app_env
        self.app_version = app_version

    def __call__(
        self, logger: Any, method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict["env"] = self.app_env
        event_dict["version"] = self.app_version
        return event_dict


def filter_sensitive_data(
    logger: Any, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Mask credentials in log entries.

    Any key containing a sensitive term is masked; long string values keep
    their first and last four characters for correlation.
    """
    for key in list(event_dict.keys()):
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in SENSITIVE_KEYS):
            value = event_dict[key]
            if isinstance(value, str) and len(value) > 8:
                event_dict[key] = f"{value[:4]}...{value[-4:]}"
            else:
                event_dict[key] = "***REDACTED***"

    return event_dict


def configure_logging(
    log_level: str = "INFO",
    app_env: str = "development",
    app_version: str = "0.1.0",
    json_format: Optional[bool] = None,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        app_env: Application environment (development, test, staging, production)
        app_version: Application version for tracking
        json_format: Force JSON output (None = auto-detect based on environment)

    Development and test runs get human-readable console output; staging and
    production get JSON for log aggregation.
    """
    if json_format is None:
        json_format = app_env in ["staging", "production"]

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ]
        ),
        RequestContextProcessor(),
        EnvironmentProcessor(app_env, app_version),
        filter_sensitive_data,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def configure_logging_from_settings(settings) -> None:
    """Configure logging from a Settings instance."""
    configure_logging(
        log_level=settings.log_level,
        app_env=settings.app_env,
        app_version=settings.app_version,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (usually __name__ from the calling module)
    """
    return structlog.get_logger(name)


def set_request_context(**kwargs: Any) -> None:
    """
    Set request-scoped context that will be included in all logs.

    Example:
        set_request_context(method="GET", path="/admin/dashboard")
    """
    ctx = dict(request_context.get() or {})
    ctx.update(kwargs)
    request_context.set(ctx)


def clear_request_context() -> None:
    """Clear the request context (called at the end of each request)."""
    request_context.set(None)
