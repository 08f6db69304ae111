"""
Writable sink abstractions and concrete adapters.

A sink accepts bytes and acknowledges once they have been handed to the
underlying destination. Writes to one sink never interleave.
"""

from __future__ import annotations

import asyncio
import io
import os
import threading
import weakref
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from multisink.logging import get_logger

logger = get_logger("multisink.sinks")


class _LoopLocks:
    """One ``asyncio.Lock`` per running event loop.

    A contended ``asyncio.Lock`` stays bound to the loop it first waited on, while
    the stdlib bridge may run each record on a fresh loop.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()
        self._guard = threading.Lock()

    def get(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        with self._guard:
            lock = self._locks.get(loop)
            if lock is None:
                lock = self._locks[loop] = asyncio.Lock()
            return lock


# =============================================================================
# Sink Abstraction (Strategy Pattern)
# =============================================================================


class BaseSink(ABC):
    """Abstract base class for writable sinks."""

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """Write ``data``; returns once the write is acknowledged."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Release the underlying resource."""
        ...

    @property
    def name(self) -> str:
        return type(self).__name__


class FileObjectSink(BaseSink):
    """Sink over any object exposing a callable ``write``.

    Blocking writes run in a worker thread. Within a loop an ``asyncio.Lock`` keeps
    them in submission order; a ``threading.Lock`` keeps writes from different
    loops apart. Text-mode files receive UTF-8 decoded strings.
    """

    def __init__(self, file: Any, *, name: str | None = None):
        self._file = file
        self._name = name or str(getattr(file, "name", type(file).__name__))
        self._text = isinstance(file, io.TextIOBase) or "b" not in str(getattr(file, "mode", "b"))
        self._locks = _LoopLocks()
        self._io_lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def closed(self) -> bool:
        return bool(getattr(self._file, "closed", False))

    def _write_blocking(self, data: bytes) -> None:
        with self._io_lock:
            self._file.write(data.decode("utf-8") if self._text else data)
            flush = getattr(self._file, "flush", None)
            if callable(flush):
                flush()

    async def write(self, data: bytes) -> None:
        async with self._locks.get():
            await asyncio.to_thread(self._write_blocking, data)

    def close(self) -> None:
        close = getattr(self._file, "close", None)
        if callable(close):
            close()


class StreamWriterSink(BaseSink):
    """Sink over an ``asyncio.StreamWriter`` (sockets, pipes)."""

    def __init__(self, writer: asyncio.StreamWriter):
        self._writer = writer
        self._locks = _LoopLocks()

    async def write(self, data: bytes) -> None:
        async with self._locks.get():
            self._writer.write(data)
            await self._writer.drain()

    def close(self) -> None:
        self._writer.close()


def as_sink(candidate: Any) -> BaseSink | None:
    """Adapt ``candidate`` to a sink, or return None if it cannot accept writes."""
    if isinstance(candidate, BaseSink):
        return candidate
    if isinstance(candidate, asyncio.StreamWriter):
        return StreamWriterSink(candidate)
    if callable(getattr(candidate, "write", None)):
        if getattr(candidate, "closed", False) is True:
            return None
        return FileObjectSink(candidate)
    return None


# =============================================================================
# File Sinks
# =============================================================================


def normalize_path(path: str | os.PathLike) -> Path:
    """Expand a leading ``~/`` and turn backslashes into slashes (strings only)."""
    if isinstance(path, str):
        path = path.replace("\\", "/")
        if path.startswith("~/"):
            path = str(Path.home()).replace("\\", "/") + path[1:]
        return Path(path)
    if isinstance(path, os.PathLike):
        return Path(os.fspath(path))
    raise TypeError(f"path must be a string, received {type(path).__name__} instead")


def _open_append(path: Path, exclusive: bool) -> io.BufferedWriter:
    path.parent.mkdir(parents=True, exist_ok=True)
    return open(path, "xb" if exclusive else "ab")


async def open_file_sink(path: Path, *, fail_if_exists: bool = False) -> FileObjectSink:
    """Open ``path`` for appending in a worker thread.

    Raises:
        FileExistsError: ``fail_if_exists`` is set and the file already exists
        OSError: the file could not be opened
    """
    handle = await asyncio.to_thread(_open_append, path, fail_if_exists)
    logger.debug("file_sink_opened", path=str(path), exclusive=fail_if_exists)
    return FileObjectSink(handle, name=str(path))
