"""
multisink's own logging.

- Diagnostics: structlog loggers under the stdlib ``multisink`` namespace,
  silent until the host application (or ``configure_logging``) enables them.
- Bridge: ``MultisinkHandler`` forwards stdlib records into a multisink logger.
"""

from .core import ROOT_LOGGER_NAME, configure_logging, get_logger
from .interceptors import MultisinkHandler, intercept_loggers, level_for

__all__ = [
    "ROOT_LOGGER_NAME",
    "configure_logging",
    "get_logger",
    "MultisinkHandler",
    "intercept_loggers",
    "level_for",
]
