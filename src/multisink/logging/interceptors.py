"""
Bridge from standard library logging into a multisink logger.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Iterable

from multisink.levels import Level

from .core import ROOT_LOGGER_NAME

if TYPE_CHECKING:
    from multisink.factory import Logger


def level_for(levelno: int) -> Level:
    """Map a stdlib level number onto the closest multisink level."""
    if levelno >= logging.CRITICAL:
        return Level.FATAL
    if levelno >= logging.ERROR:
        return Level.ERROR
    if levelno >= logging.WARNING:
        return Level.WARN
    if levelno >= logging.INFO:
        return Level.INFO
    if levelno >= logging.DEBUG:
        return Level.DEBUG
    return Level.TRACE


class MultisinkHandler(logging.Handler):
    """
    Forward stdlib log records to a multisink ``Logger``.

    Inside a running event loop the dispatch is scheduled; elsewhere it is run
    to completion before ``emit`` returns. Records from multisink's own
    diagnostics loggers are dropped so a failing target cannot feed itself.
    """

    def __init__(self, target: "Logger", level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.target = target

    def emit(self, record: logging.LogRecord) -> None:
        if record.name == ROOT_LOGGER_NAME or record.name.startswith(ROOT_LOGGER_NAME + "."):
            return
        try:
            message = self.format(record)
            level = level_for(record.levelno)
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                asyncio.run(self.target.emit(level, message))
                return
            task = self.target.log(level, message)
            task.add_done_callback(lambda t: self._report(record, t))
        except Exception:
            self.handleError(record)

    def _report(self, record: logging.LogRecord, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        try:
            raise exc
        except Exception:
            self.handleError(record)


def intercept_loggers(target: "Logger", names: Iterable[str] = ("",), level: int = logging.NOTSET) -> MultisinkHandler:
    """Route the named stdlib loggers ("" is the root) to ``target``.

    Existing handlers on those loggers are removed and propagation is turned
    off, so each record is delivered once.
    """
    handler = MultisinkHandler(target, level)
    for name in names:
        lg = logging.getLogger(name)
        lg.handlers = [handler]
        if name:
            lg.propagate = False
    return handler
