"""
structlog configuration.

Modules log through `structlog.get_logger(__name__)` with snake_case event
names and key-value context. `configure_logging` is called once by entry
points (the offline demo tool, `build_ledger(..., setup_logging=True)`); library code never
configures logging on import.
"""

from __future__ import annotations

import logging

import structlog


_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def parse_level(level: str) -> int:
    if not isinstance(level, str) or level.strip().upper() not in _LEVELS:
        raise ValueError(f"log level must be one of {sorted(_LEVELS)}, got {level!r}")
    return _LEVELS[level.strip().upper()]


def configure_logging(level: str = "INFO", *, json: bool = False) -> None:
    """
    Configure structlog for console (default) or JSON line output.
    """
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(parse_level(level)),
        cache_logger_on_first_use=False,
    )
