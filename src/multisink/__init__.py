"""
multisink: leveled logging fanned out to many targets at once.

A factory owns a set of targets (stdout, files, streams, callables, HTTP
endpoints); loggers created from it send every call to all targets whose
level accepts it, concurrently, each rendered in that target's own style.
"""

from .colors import resolve_color
from .exceptions import (
    ConfigurationError,
    DeliveryError,
    FactoryDestroyedError,
    FatalTargetError,
    InvalidColorError,
    InvalidTargetError,
    MultisinkError,
)
from .factory import Logger, LoggerFactory, create_logger_factory
from .levels import LEVEL_NAME_WIDTH, LEVEL_NAMES, ErrorPolicy, Level, RenderStyle
from .serialization import UNDEFINED
from .sinks import BaseSink, FileObjectSink, StreamWriterSink
from .targets import (
    CallbackTarget,
    FileTargetSpec,
    FunctionTargetSpec,
    HttpPostTarget,
    PostTargetSpec,
    SinkTarget,
    StdoutTargetSpec,
    StreamTargetSpec,
    TargetOptions,
)

WritableSink = BaseSink

__all__ = [
    "create_logger_factory",
    "Logger",
    "LoggerFactory",
    "Level",
    "LEVEL_NAMES",
    "LEVEL_NAME_WIDTH",
    "RenderStyle",
    "ErrorPolicy",
    "resolve_color",
    "UNDEFINED",
    "BaseSink",
    "WritableSink",
    "FileObjectSink",
    "StreamWriterSink",
    "FileTargetSpec",
    "StreamTargetSpec",
    "StdoutTargetSpec",
    "FunctionTargetSpec",
    "PostTargetSpec",
    "TargetOptions",
    "SinkTarget",
    "CallbackTarget",
    "HttpPostTarget",
    "MultisinkError",
    "ConfigurationError",
    "InvalidTargetError",
    "InvalidColorError",
    "FatalTargetError",
    "FactoryDestroyedError",
    "DeliveryError",
]
