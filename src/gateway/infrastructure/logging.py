"""Logging configuration for the gateway process.

Gateway events are emitted through structlog: colored console output when
attached to a terminal, one JSON object per line otherwise. uvicorn logs
through the standard library, which is configured with the same minimum
level so server and gateway output can be filtered together.
"""

import logging
import os
import sys

import structlog

STDLIB_FORMAT = "%(asctime)s %(levelname)-8s %(name)s %(message)s"


def _use_colors() -> bool:
    # FORCE_COLOR=1 enables colors even in non-TTY environments (like Docker)
    force_color = os.environ.get("FORCE_COLOR", "").lower() in ("1", "true", "yes")
    return force_color or sys.stdout.isatty()


def _renderers(use_colors: bool) -> list[structlog.types.Processor]:
    if use_colors:
        return [structlog.dev.ConsoleRenderer(colors=True)]
    return [
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]


def configure_logging(level: str = "info") -> None:
    """Configure structlog and the standard library logging module.

    Args:
        level: Minimum level name ("debug", "info", "warning", ...).
            Unknown names fall back to info.
    """
    min_level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)

    logging.basicConfig(
        level=min_level,
        format=STDLIB_FORMAT,
        stream=sys.stdout,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            *_renderers(_use_colors()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
