"""Structured logging configuration.

Production emits one JSON object per line; every other environment gets
the colored console renderer. ``configure_logging()`` runs once from the
FastAPI lifespan.

Admission events carry request metadata, so the redaction step masks both
sensitive top-level keys and sensitive entries of a logged ``headers``
mapping (cookies and the echoed CSRF token).
"""

import logging
import sys
from collections.abc import Mapping

import structlog

SERVICE_NAME = "invitegen-edge"

SENSITIVE_KEYS: frozenset[str] = frozenset(
    {"password", "site_password", "secret", "token", "csrf_token", "authorization"}
)
SENSITIVE_HEADERS: frozenset[str] = frozenset(
    {"cookie", "set-cookie", "x-csrf-token", "authorization"}
)
REDACTED = "***REDACTED***"


def _redact_sensitive_keys(
    logger: logging.Logger,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    """Mask secrets in log events, including inside a ``headers`` mapping."""
    for key in event_dict:
        if key.lower() in SENSITIVE_KEYS:
            event_dict[key] = REDACTED

    headers = event_dict.get("headers")
    if isinstance(headers, Mapping):
        event_dict["headers"] = {
            name: REDACTED if name.lower() in SENSITIVE_HEADERS else value
            for name, value in headers.items()
        }
    return event_dict


def _add_service(
    logger: logging.Logger,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging(
    environment: str = "development",
    log_level: str = "INFO",
) -> None:
    """Wire structlog into the stdlib root logger.

    Args:
        environment: ``"production"`` selects JSON output; anything else
            selects the console renderer.
        log_level: Root log level name (DEBUG, INFO, WARNING, ...).
    """
    is_production = environment == "production"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        _add_service,
        _redact_sensitive_keys,
    ]

    renderer: structlog.types.Processor
    if is_production:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())

    # uvicorn's access log duplicates RequestLoggingMiddleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
