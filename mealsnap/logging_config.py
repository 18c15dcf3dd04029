"""Logging setup for processes embedding the intake pipeline.

Library modules only call ``structlog.get_logger(__name__)``; the host
process calls ``configure_logging()`` once at startup.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

import structlog


def configure_logging(level: Optional[str] = None, json: bool = False) -> None:
    """
    Configure stdlib logging and structlog.

    Args:
        level: Log level name; defaults to ``LOG_LEVEL`` env (INFO)
        json: Render JSON lines instead of the console renderer
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
    )


__all__ = ["configure_logging"]
