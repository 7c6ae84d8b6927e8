"""Logging configuration using structlog.

``build_orchestrator`` calls ``configure_logging`` while wiring the
application. Layers that build the orchestrator by hand call it themselves
before the first action.
"""

import logging
import sys

import structlog

from stakeflow.config.settings import Settings, get_settings


def configure_logging(settings: Settings | None = None) -> None:
    """Route structlog events to stdout at the configured level.

    Debug mode renders events for the console; otherwise each event is one
    JSON line carrying the application name.
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level)

    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.debug
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )
    structlog.contextvars.bind_contextvars(app=settings.app_name)

    # httpx logs every RPC request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
