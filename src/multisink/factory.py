"""
Logger factory and per-component loggers.

Usage:
    factory = await create_logger_factory([
        {"type": "STDOUT", "color": True, "uniformLength": True},
        {"type": "FILE", "path": "~/logs/app.log", "style": "JSON", "logLevel": "INFO"},
    ])
    log = factory.create_logger("db", "pool", color="#26E2D0")
    log.info("connected", {"size": 10})       # fire-and-forget
    await log.error("query failed", exc)      # or wait for every target
    factory.destroy()
"""

from __future__ import annotations

import asyncio
import threading
import weakref
from typing import Any, Coroutine, Iterable, Mapping, Optional, Union

from multisink.config import TargetDefaultsSettings
from multisink.logging import get_logger

from .colors import ColorSpec, Style, resolve_color
from .dispatch import dispatch
from .events import Clock, display_name_length, now_ms
from .exceptions import ConfigurationError, FactoryDestroyedError
from .levels import Level
from .targets import Target, TargetSpec, normalize_targets, release_targets

logger = get_logger("multisink.factory")

Descriptor = Union[TargetSpec, Mapping[str, Any]]


class LoggerFactory:
    """Owns the resolved targets and creates loggers bound to them.

    Do not construct directly; use ``create_logger_factory``.
    """

    def __init__(self, targets: Iterable[Target], *, clock: Optional[Clock] = None) -> None:
        self._targets: tuple[Target, ...] = tuple(targets)
        self._clock: Clock = clock or now_ms
        self._max_name_length = 0
        self._destroyed = False
        self._lock = threading.Lock()
        self._pending: set[asyncio.Task] = set()

    @property
    def targets(self) -> tuple[Target, ...]:
        return self._targets

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def max_name_length(self) -> int:
        """Longest display name of any logger created so far."""
        return self._max_name_length

    def create_logger(
        self,
        component: str,
        source: Optional[str] = None,
        color: ColorSpec = None,
    ) -> "Logger":
        """Create a logger for ``component`` (and optional sub-``source``).

        Raises:
            FactoryDestroyedError: the factory has been destroyed
            InvalidColorError: ``color`` is not a valid color spec
        """
        if self._destroyed:
            raise FactoryDestroyedError()
        if not isinstance(component, str) or not component:
            raise ConfigurationError("component must be a non-empty string", code="INVALID_LOGGER")
        if source is not None and not isinstance(source, str):
            raise ConfigurationError("source must be a string", code="INVALID_LOGGER")

        style = resolve_color(color)

        with self._lock:
            self._max_name_length = max(self._max_name_length, display_name_length(component, source))

        return Logger(self, component, source or None, style)

    def destroy(self) -> None:
        """Release owned sinks and reject every later log call. Idempotent.

        Dispatches already running are not cancelled.
        """
        with self._lock:
            if self._destroyed:
                return
            self._destroyed = True
            targets, self._targets = self._targets, ()

        release_targets(targets)
        logger.debug("factory_destroyed", targets=len(targets), pending=len(self._pending))

    def _schedule(self, coro: Coroutine[Any, Any, list[Any]]) -> "asyncio.Task[list[Any]]":
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def flush(self) -> None:
        """Wait until every scheduled log call has settled (failures included)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        await self.flush()
        self.destroy()

    async def __aenter__(self) -> "LoggerFactory":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


class Logger:
    """Emits leveled messages through its factory's targets.

    Holds only a weak reference to the factory; once the factory is destroyed
    or collected, every emit method raises ``FactoryDestroyedError``.
    """

    def __init__(self, factory: LoggerFactory, component: str, source: Optional[str], color: Style) -> None:
        self._factory_ref = weakref.ref(factory)
        self._component = component
        self._source = source
        self._color = color

    @property
    def component(self) -> str:
        return self._component

    @property
    def source(self) -> Optional[str]:
        return self._source

    @property
    def color(self) -> Style:
        return self._color

    @property
    def display_name(self) -> str:
        return f"{self._component}/{self._source}" if self._source else self._component

    @property
    def factory(self) -> Optional[LoggerFactory]:
        return self._factory_ref()

    @property
    def destroyed(self) -> bool:
        factory = self._factory_ref()
        return factory is None or factory.destroyed

    def _live_factory(self) -> LoggerFactory:
        factory = self._factory_ref()
        if factory is None or factory.destroyed:
            raise FactoryDestroyedError("Logger")
        return factory

    async def emit(self, level: Union[Level, str, int], *messages: Any) -> list[Any]:
        """Dispatch in the current task and return the per-target results."""
        factory = self._live_factory()
        return await dispatch(factory, self, factory.targets, Level.parse(level), messages)

    def log(self, level: Union[Level, str, int], *messages: Any) -> "asyncio.Task[list[Any]]":
        """Schedule a dispatch on the running loop and return its task.

        The destroyed check happens here, before anything is scheduled.
        """
        factory = self._live_factory()
        level = Level.parse(level)
        # Fail before the coroutine exists when there is no running loop
        asyncio.get_running_loop()
        return factory._schedule(dispatch(factory, self, factory.targets, level, messages))

    def trace(self, *messages: Any) -> "asyncio.Task[list[Any]]":
        return self.log(Level.TRACE, *messages)

    def debug(self, *messages: Any) -> "asyncio.Task[list[Any]]":
        return self.log(Level.DEBUG, *messages)

    def info(self, *messages: Any) -> "asyncio.Task[list[Any]]":
        return self.log(Level.INFO, *messages)

    def warn(self, *messages: Any) -> "asyncio.Task[list[Any]]":
        return self.log(Level.WARN, *messages)

    def error(self, *messages: Any) -> "asyncio.Task[list[Any]]":
        return self.log(Level.ERROR, *messages)

    def fatal(self, *messages: Any) -> "asyncio.Task[list[Any]]":
        return self.log(Level.FATAL, *messages)

    def __repr__(self) -> str:
        return f"Logger({self.display_name!r}, destroyed={self.destroyed})"


async def create_logger_factory(
    targets: Union[Descriptor, Iterable[Descriptor]],
    *,
    clock: Optional[Clock] = None,
    defaults: Optional[TargetDefaultsSettings] = None,
) -> LoggerFactory:
    """Normalize ``targets`` (one descriptor or a sequence) into a new factory.

    Args:
        targets: FILE/STREAM/STDOUT/FUNCTION/POST descriptors
        clock: epoch-millisecond clock; defaults to wall-clock time
        defaults: values for unspecified descriptor fields; defaults to settings

    Raises:
        InvalidTargetError: a descriptor failed validation; nothing is kept open
        FatalTargetError: a FILE target could not be opened and has no error listener
    """
    resolved = await normalize_targets(targets, defaults=defaults)
    logger.debug("factory_created", targets=[target.kind for target in resolved])
    return LoggerFactory(resolved, clock=clock)
