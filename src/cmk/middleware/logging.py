"""Structured logging configuration with structlog."""

import logging

import structlog

from cmk.config import Settings

# Chatty third-party loggers held at WARNING unless debugging
_QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncio", "uvicorn.access")


def _add_environment(environment: str) -> structlog.types.Processor:
    def processor(_logger: object, _method: str, event_dict: dict) -> dict:
        event_dict.setdefault("env", environment)
        return event_dict

    return processor


def setup_logging(settings: Settings) -> None:
    """Configure structlog for JSON (production) or console (development) output."""
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            _add_environment(settings.environment),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(message)s")
    if not settings.debug:
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(max(level, logging.WARNING))
