"""Structured logging setup.

All log output goes to stderr; stdout is reserved for the report
document so machine-readable output stays parseable.
"""

import logging
import sys
from typing import Any

import structlog

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def configure_logging(level: str = "warning", *, json_output: bool = False) -> None:
    """Configure structlog for the current process.

    Args:
        level: One of debug, info, warning, error
        json_output: Render log lines as JSON instead of console text
    """
    renderer: Any
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_LEVELS[level]),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        # Loggers must pick up a fresh stderr after reconfiguration
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None, **initial_values: Any) -> Any:
    """Get a bound structlog logger."""
    if name is not None:
        initial_values["logger_name"] = name
    return structlog.get_logger(**initial_values)
