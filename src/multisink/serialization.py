"""
Cycle-safe conversion of arbitrary message values into JSON.
"""

from __future__ import annotations

import dataclasses
import traceback
from typing import Any

import orjson

CIRCULAR_MARKER = "[Circular]"

# orjson only encodes integers in this range
_INT64_MIN = -(2**63)
_UINT64_MAX = 2**64 - 1


class _Undefined:
    """Sentinel for a value that is absent rather than ``None``."""

    _instance: "_Undefined | None" = None

    def __new__(cls) -> "_Undefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "undefined"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()


def format_exception_stack(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)).rstrip()


def exception_fields(exc: BaseException) -> dict[str, Any]:
    """Expand an exception into a plain field map (name, message, stack, attributes)."""
    fields: dict[str, Any] = {
        "name": type(exc).__name__,
        "message": str(exc),
        "stack": format_exception_stack(exc),
    }
    if len(exc.args) > 1:
        fields["args"] = list(exc.args)
    fields.update({k: v for k, v in vars(exc).items() if not k.startswith("_")})
    if exc.__cause__ is not None:
        fields["cause"] = exc.__cause__
    return fields


class _Sanitizer:
    """One conversion pass. Containers are tracked by identity: the first
    occurrence is kept, any later one becomes ``CIRCULAR_MARKER``."""

    def __init__(self) -> None:
        # Holding the objects keeps their ids from being reused mid-pass
        self._seen: dict[int, Any] = {}

    def _enter(self, value: Any) -> bool:
        key = id(value)
        if key in self._seen:
            return False
        self._seen[key] = value
        return True

    def convert(self, value: Any) -> Any:
        if value is UNDEFINED:
            return "undefined"
        if isinstance(value, int) and not isinstance(value, bool) and not _INT64_MIN <= value <= _UINT64_MAX:
            return str(value)
        if value is None or isinstance(value, (str, int, float, bool)):
            return value

        if isinstance(value, BaseException):
            if not self._enter(value):
                return CIRCULAR_MARKER
            return {k: self.convert(v) for k, v in exception_fields(value).items()}

        if isinstance(value, dict):
            if value and not self._enter(value):
                return CIRCULAR_MARKER
            return {str(k): self.convert(v) for k, v in value.items()}

        if isinstance(value, (list, tuple, set, frozenset)):
            if value and not self._enter(value):
                return CIRCULAR_MARKER
            items = sorted(value, key=repr) if isinstance(value, (set, frozenset)) else value
            return [self.convert(v) for v in items]

        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            if not self._enter(value):
                return CIRCULAR_MARKER
            return {f.name: self.convert(getattr(value, f.name)) for f in dataclasses.fields(value)}

        # Leave the rest (datetime, UUID, Enum, ...) to orjson and its default hook
        return value


def _default(value: Any) -> Any:
    model_dump = getattr(value, "model_dump", None)
    if callable(model_dump):
        return model_dump(mode="json")
    return str(value)


def to_json_safe(value: Any) -> Any:
    """Return a copy of ``value`` that contains no reference cycles."""
    return _Sanitizer().convert(value)


def dumps(value: Any) -> str:
    """Serialize ``value`` to a JSON string, breaking cycles first."""
    return orjson.dumps(to_json_safe(value), default=_default, option=orjson.OPT_NON_STR_KEYS).decode()
