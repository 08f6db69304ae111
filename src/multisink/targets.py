"""
Target descriptors and their normalization into resolved targets.

A descriptor is what callers write (a dict or one of the ``*TargetSpec``
models, discriminated on ``type``). A target is the immutable record the
dispatcher works with: ``SinkTarget``, ``CallbackTarget`` or ``HttpPostTarget``.
"""

from __future__ import annotations

import inspect
import sys
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Annotated, Any, Callable, ClassVar, Dict, Iterable, Literal, Mapping, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from multisink.config import TargetDefaultsSettings, settings
from multisink.logging import get_logger

from .exceptions import FatalTargetError, InvalidTargetError
from .http import REQUEST_OPTION_KEYS, merge_post_options, post_payload
from .levels import ErrorPolicy, Level, RenderStyle
from .sinks import BaseSink, as_sink, normalize_path, open_file_sink

logger = get_logger("multisink.targets")

TARGET_TYPES = ("FILE", "STREAM", "STDOUT", "FUNCTION", "POST")


# =============================================================================
# Descriptors
# =============================================================================


class TargetSpec(BaseModel):
    """Fields shared by every target kind. ``None`` means "use the default"."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        extra="ignore",
        frozen=True,
    )

    log_level: Optional[Level] = Field(default=None, alias="logLevel")
    style: Optional[RenderStyle] = None
    uniform_length: Optional[bool] = Field(default=None, alias="uniformLength")
    color: Optional[bool] = None
    full_timestamps: Optional[bool] = Field(default=None, alias="fullTimestamps")
    error_policy: Optional[ErrorPolicy] = Field(default=None, alias="errorPolicy")

    @field_validator("log_level", mode="before")
    @classmethod
    def _parse_level(cls, value: Any) -> Optional[Level]:
        if value is None:
            return None
        try:
            return Level.parse(value)
        except TypeError as exc:
            raise ValueError(str(exc)) from exc


class FileTargetSpec(TargetSpec):
    type: Literal["FILE"] = "FILE"
    path: Any
    fail_if_exists: Optional[bool] = Field(default=None, alias="failIfExists")
    error_listener: Optional[Callable[..., Any]] = Field(default=None, alias="errorListener")


class StreamTargetSpec(TargetSpec):
    type: Literal["STREAM"] = "STREAM"
    stream: Any


class StdoutTargetSpec(TargetSpec):
    type: Literal["STDOUT"] = "STDOUT"


class FunctionTargetSpec(TargetSpec):
    type: Literal["FUNCTION"] = "FUNCTION"
    function: Any


class PostTargetSpec(TargetSpec):
    type: Literal["POST"] = "POST"
    url: Any
    https: Optional[bool] = None
    options: Optional[Dict[str, Any]] = None
    transport: Optional[Any] = None


TargetDescriptor = Annotated[
    Union[FileTargetSpec, StreamTargetSpec, StdoutTargetSpec, FunctionTargetSpec, PostTargetSpec],
    Field(discriminator="type"),
]

_DESCRIPTOR_ADAPTER: TypeAdapter = TypeAdapter(TargetDescriptor)


def parse_descriptor(descriptor: Union[TargetSpec, Mapping[str, Any]]) -> TargetSpec:
    """Validate a raw descriptor into its spec model."""
    if isinstance(descriptor, TargetSpec):
        kind = getattr(descriptor, "type", None)
        if kind not in TARGET_TYPES:
            raise InvalidTargetError(f"Invalid target type: {kind}", target_type=str(kind))
        return descriptor
    if not isinstance(descriptor, Mapping):
        raise InvalidTargetError(f"Invalid target descriptor: {descriptor!r}")

    kind = descriptor.get("type")
    if kind not in TARGET_TYPES:
        raise InvalidTargetError(f"Invalid target type: {kind}", target_type=str(kind))

    try:
        return _DESCRIPTOR_ADAPTER.validate_python(dict(descriptor))
    except ValidationError as exc:
        errors = exc.errors(include_url=False, include_context=False)
        fields = ", ".join(".".join(str(p) for p in err["loc"][1:]) or "?" for err in errors)
        raise InvalidTargetError(
            f"Invalid {kind} target ({fields}): {errors[0]['msg']}",
            target_type=kind,
            errors=errors,
        ) from exc


# =============================================================================
# Resolved Targets
# =============================================================================


@dataclass(frozen=True)
class TargetOptions:
    """Filtering, rendering and error-handling options shared by every target."""

    level: Level
    style: RenderStyle
    color: bool
    uniform: bool
    full_timestamps: bool
    error_policy: ErrorPolicy

    kind: ClassVar[str] = "TARGET"

    def accepts(self, rank: Level) -> bool:
        return self.level.accepts(rank)

    async def deliver(self, payload: str) -> Any:
        raise NotImplementedError


@dataclass(frozen=True)
class SinkTarget(TargetOptions):
    """Writes each payload plus a newline to a sink."""

    sink: BaseSink = field(kw_only=True)
    owned: bool = field(default=False, kw_only=True)

    kind: ClassVar[str] = "SINK"

    async def deliver(self, payload: str) -> None:
        await self.sink.write((payload + "\n").encode("utf-8"))


@dataclass(frozen=True)
class CallbackTarget(TargetOptions):
    """Calls a function with each payload, awaiting the result when needed."""

    func: Callable[[str], Any] = field(kw_only=True)

    kind: ClassVar[str] = "CALLBACK"

    async def deliver(self, payload: str) -> Any:
        result = self.func(payload)
        if inspect.isawaitable(result):
            result = await result
        return result


@dataclass(frozen=True)
class HttpPostTarget(TargetOptions):
    """POSTs each payload to a URL."""

    url: str = field(kw_only=True)
    https: bool = field(default=True, kw_only=True)
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({"method": "POST"}), kw_only=True)
    transport: Optional[httpx.AsyncBaseTransport] = field(default=None, kw_only=True)
    timeout: Optional[float] = field(default=None, kw_only=True)

    kind: ClassVar[str] = "HTTP_POST"

    @property
    def scheme(self) -> str:
        return "https" if self.https else "http"

    async def deliver(self, payload: str) -> dict[str, Any]:
        return await post_payload(
            self.url,
            payload,
            options=self.options,
            transport=self.transport,
            timeout=self.timeout,
        )


Target = Union[SinkTarget, CallbackTarget, HttpPostTarget]


# =============================================================================
# Normalization
# =============================================================================


def write_stdout(line: str) -> None:
    """Write one line to the current ``sys.stdout``."""
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


def _base_options(spec: TargetSpec, defaults: TargetDefaultsSettings) -> Dict[str, Any]:
    return {
        "level": spec.log_level if spec.log_level is not None else defaults.level,
        "style": spec.style or defaults.style,
        "color": spec.color if spec.color is not None else defaults.color,
        "uniform": spec.uniform_length if spec.uniform_length is not None else defaults.uniform_length,
        "full_timestamps": spec.full_timestamps if spec.full_timestamps is not None else defaults.full_timestamps,
        "error_policy": spec.error_policy or defaults.error_policy,
    }


def _resolve_url(raw: Any, https: bool) -> str:
    if isinstance(raw, httpx.URL):
        raw = str(raw)
    if not isinstance(raw, str) or not raw:
        raise InvalidTargetError("url must be a non-empty string or httpx.URL", target_type="POST", field="url")

    scheme = "https" if https else "http"
    if "://" not in raw:
        raw = f"{scheme}://{raw}"
    try:
        url = httpx.URL(raw)
    except (httpx.InvalidURL, TypeError) as exc:
        raise InvalidTargetError(f"Invalid url {raw!r}: {exc}", target_type="POST", field="url") from exc

    if url.scheme != scheme:
        raise InvalidTargetError(
            f"url scheme '{url.scheme}' does not match https={https}",
            target_type="POST",
            field="url",
        )
    if not url.host:
        raise InvalidTargetError(f"url {raw!r} has no host", target_type="POST", field="url")
    return str(url)


def _resolve_post(spec: PostTargetSpec, base: Dict[str, Any], defaults: TargetDefaultsSettings) -> HttpPostTarget:
    https = spec.https if spec.https is not None else defaults.https
    options = spec.options or {}
    unknown = set(options) - REQUEST_OPTION_KEYS
    if unknown:
        raise InvalidTargetError(
            f"Unsupported request options: {', '.join(sorted(unknown))}",
            target_type="POST",
            field="options",
        )
    if spec.transport is not None and not isinstance(spec.transport, httpx.AsyncBaseTransport):
        raise InvalidTargetError(
            "transport must be an httpx.AsyncBaseTransport",
            target_type="POST",
            field="transport",
        )
    return HttpPostTarget(
        **base,
        url=_resolve_url(spec.url, https),
        https=https,
        options=MappingProxyType(merge_post_options(options)),
        transport=spec.transport,
        timeout=defaults.http_timeout,
    )


async def _resolve_file(spec: FileTargetSpec, base: Dict[str, Any]) -> Optional[SinkTarget]:
    try:
        path = normalize_path(spec.path)
    except TypeError as exc:
        raise InvalidTargetError(str(exc), target_type="FILE", field="path") from exc

    try:
        sink = await open_file_sink(path, fail_if_exists=bool(spec.fail_if_exists))
    except OSError as exc:
        if spec.error_listener is None:
            raise FatalTargetError(path=str(path), reason=str(exc)) from exc
        logger.warning("file_target_open_failed", path=str(path), error=str(exc))
        result = spec.error_listener(exc)
        if inspect.isawaitable(result):
            await result
        return None

    return SinkTarget(**base, sink=sink, owned=True)


async def normalize_target(
    descriptor: Union[TargetSpec, Mapping[str, Any]],
    *,
    defaults: Optional[TargetDefaultsSettings] = None,
) -> Optional[Target]:
    """Resolve one descriptor into a target.

    Returns None only when a FILE target failed to open and its error listener
    took the error.
    """
    defaults = defaults or settings.targets
    spec = parse_descriptor(descriptor)
    base = _base_options(spec, defaults)

    if isinstance(spec, FileTargetSpec):
        return await _resolve_file(spec, base)

    if isinstance(spec, StreamTargetSpec):
        sink = as_sink(spec.stream)
        if sink is None:
            raise InvalidTargetError(
                "stream must be a writable sink (an object with a write method)",
                target_type="STREAM",
                field="stream",
            )
        return SinkTarget(**base, sink=sink, owned=False)

    if isinstance(spec, StdoutTargetSpec):
        return CallbackTarget(**base, func=write_stdout)

    if isinstance(spec, FunctionTargetSpec):
        if not callable(spec.function):
            raise InvalidTargetError("function must be callable", target_type="FUNCTION", field="function")
        return CallbackTarget(**base, func=spec.function)

    return _resolve_post(spec, base, defaults)


def release_targets(targets: Iterable[Target]) -> None:
    """Close every sink the factory opened itself; borrowed sinks are left alone."""
    for target in targets:
        if isinstance(target, SinkTarget) and target.owned:
            try:
                target.sink.close()
            except OSError as exc:
                logger.warning("sink_close_failed", sink=target.sink.name, error=str(exc))


async def normalize_targets(
    descriptors: Union[TargetSpec, Mapping[str, Any], Iterable[Union[TargetSpec, Mapping[str, Any]]]],
    *,
    defaults: Optional[TargetDefaultsSettings] = None,
) -> list[Target]:
    """Resolve one descriptor or a sequence of them.

    Either every descriptor resolves or none is kept: files opened for earlier
    descriptors are closed again when a later one fails.
    """
    if isinstance(descriptors, (TargetSpec, Mapping)):
        descriptors = [descriptors]

    targets: list[Target] = []
    try:
        for descriptor in descriptors:
            target = await normalize_target(descriptor, defaults=defaults)
            if target is not None:
                targets.append(target)
    except BaseException:
        release_targets(targets)
        raise
    return targets


__all__ = [
    "TARGET_TYPES",
    "TargetSpec",
    "FileTargetSpec",
    "StreamTargetSpec",
    "StdoutTargetSpec",
    "FunctionTargetSpec",
    "PostTargetSpec",
    "TargetDescriptor",
    "TargetOptions",
    "SinkTarget",
    "CallbackTarget",
    "HttpPostTarget",
    "Target",
    "parse_descriptor",
    "normalize_target",
    "normalize_targets",
    "release_targets",
    "write_stdout",
]
