"""Structured logging: JSON lines on stdout via structlog."""

from __future__ import annotations

import logging

import structlog
from structlog.types import EventDict, Processor

from ..config.settings import get_settings


def _log_level(name: str, debug: bool) -> int:
    if debug:
        return logging.DEBUG
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def _service_adder(service_name: str) -> Processor:
    def add_service(logger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service_name)
        return event_dict

    return add_service


def configure_logging() -> None:
    """Configure structlog from settings. `debug` forces DEBUG and adds the call site."""
    settings = get_settings()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        _service_adder(settings.service_name),
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if settings.debug:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                {
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.LINENO,
                }
            )
        )
    processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_log_level(settings.log_level, settings.debug)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None):
    return structlog.get_logger(name)
