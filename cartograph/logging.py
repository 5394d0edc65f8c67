"""Structured logging configuration using ``structlog``.

Call :func:`setup_logging` once at process start (the API lifespan does
this) so that every ``structlog.get_logger(__name__)`` in the analysis,
graph and retrieval layers renders through the same pipeline.
"""

from __future__ import annotations

import logging
import sys

import structlog


def setup_logging(log_level: str = "INFO", *, json_logs: bool = False) -> None:
    """Configure ``structlog`` and the standard-library root logger.

    Args:
        log_level: Minimum severity level (e.g. ``"DEBUG"``, ``"INFO"``).
        json_logs: Render one JSON object per event instead of the
            coloured console format.
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    # Third-party libraries (uvicorn, httpx, sentence-transformers) log
    # through the stdlib root logger.
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=numeric_level,
    )

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_logs:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
