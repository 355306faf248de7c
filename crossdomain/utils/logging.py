"""
Structured logging setup for the engine.

Modules log through structlog.get_logger() with snake_case events. The
cycle_id, domain and correlation_id of a provider call reach every line via
structlog.contextvars, including lines emitted on worker threads.
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from crossdomain.config import Settings, get_settings


def add_severity(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add severity level for structured logging."""
    event_dict["severity"] = method_name.upper()
    return event_dict


def _renderer(settings: Settings) -> Processor:
    if settings.log_format == "json" and not settings.dev_mode:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=settings.dev_mode)


def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure stdlib logging and structlog for one process.

    JSON lines unless log_format is "console" or dev_mode is on.

    Args:
        settings: Settings to read level and format from (default: get_settings())
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            add_severity,
            _renderer(settings),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
