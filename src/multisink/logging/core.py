"""
Core diagnostics logging configuration.

multisink reports on itself through structlog bound to stdlib loggers under the
``multisink`` namespace, so nothing is printed unless the host application (or
``configure_logging``) enables that namespace.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from typing import Any

import orjson
import structlog
from structlog.typing import EventDict, WrappedLogger

from multisink.config import DiagnosticsFormat, settings

ROOT_LOGGER_NAME = "multisink"

# =============================================================================
# Global State
# =============================================================================

_format: DiagnosticsFormat = settings.diagnostics.format
_handler: logging.Handler | None = None

logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())


def orjson_dumps(v: Any, *, default: Any = None) -> str:
    """Fast JSON serialization using orjson."""
    return orjson.dumps(v, default=default, option=orjson.OPT_UTC_Z | orjson.OPT_NAIVE_UTC).decode()


# =============================================================================
# Structlog Processors
# =============================================================================


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add ISO 8601 timestamp to log event."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def add_logger_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add the stdlib logger name to log event."""
    event_dict["logger"] = getattr(logger, "name", ROOT_LOGGER_NAME)
    return event_dict


_console_renderer = structlog.dev.ConsoleRenderer(colors=False)


def render(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> str:
    """Render with the format selected by ``configure_logging``."""
    if _format == DiagnosticsFormat.JSON:
        return orjson_dumps(event_dict, default=str)
    return _console_renderer(logger, method_name, event_dict)


_PROCESSORS = [
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_log_level,
    add_timestamp,
    add_logger_name,
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    render,
]


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured diagnostics logger under the ``multisink`` namespace."""
    return structlog.wrap_logger(
        logging.getLogger(name or ROOT_LOGGER_NAME),
        processors=_PROCESSORS,
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


# =============================================================================
# Configuration Logic
# =============================================================================


def configure_logging(
    *,
    level: str | None = None,
    fmt: str | None = None,
    stream: Any = None,
) -> None:
    """
    Enable multisink diagnostics output.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL); defaults to settings
        fmt: Output format (console, json); defaults to settings
        stream: Output stream for the diagnostics handler (default: stderr)
    """
    global _format, _handler

    level = (level or settings.diagnostics.level.value).upper()
    _format = DiagnosticsFormat((fmt or settings.diagnostics.format.value).lower())

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(getattr(logging, level, logging.WARNING))

    # Replace our own handler, never ones the application attached
    if _handler is not None:
        root.removeHandler(_handler)
    _handler = logging.StreamHandler(stream or sys.stderr)
    _handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(_handler)
