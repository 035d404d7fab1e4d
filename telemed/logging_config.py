"""
Structured logging for the consultation service.

Service code logs snake_case events with keyword fields:

    logger = get_logger(__name__)
    logger.info("consultation_started", consultation_id=7)

Request-scoped fields (``trace_id`` from the request middleware,
``caller`` from the identity header) are bound with
``structlog.contextvars`` and merged into every entry emitted while the
request is handled, including entries from the core services.
"""

from __future__ import annotations

import logging
import sys
import uuid

import structlog

from telemed.config import Settings, get_settings


def generate_trace_id() -> str:
    return uuid.uuid4().hex[:12]


def _renderer(settings: Settings) -> structlog.types.Processor:
    if settings.is_production:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging(settings: Settings | None = None) -> None:
    """
    Route structlog and stdlib records (uvicorn, redis) through one
    formatter writing to stdout: JSON in production, console otherwise.
    """
    settings = settings or get_settings()

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    structlog.configure(
        processors=[
            *pre_chain,
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
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(settings),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(settings.log_level.upper())


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
