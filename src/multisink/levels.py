"""
Severity levels.

Lower rank means more severe: FATAL=1 ... TRACE=6.
"""

from __future__ import annotations

from enum import Enum, IntEnum


class Level(IntEnum):
    FATAL = 1
    ERROR = 2
    WARN = 3
    INFO = 4
    DEBUG = 5
    TRACE = 6

    @classmethod
    def parse(cls, value: "Level | str | int | None", default: "Level | None" = None) -> "Level":
        """Resolve a level name, rank or member.

        Names are matched exactly ("WARN", not "warn"). ``None`` yields ``default``
        (TRACE when no default is given).
        """
        if value is None:
            return default if default is not None else cls.TRACE
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value]
            except KeyError:
                raise ValueError(
                    f"log level must be one of {', '.join(LEVEL_NAMES)}. Received {value!r} instead"
                ) from None
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                raise ValueError(f"log level rank must be between 1 and 6. Received {value!r} instead") from None
        raise TypeError(f"log level must be a level name or rank. Received {value!r} instead")

    def accepts(self, rank: "Level") -> bool:
        """True when an event at ``rank`` passes a threshold of ``self``."""
        return rank <= self


class RenderStyle(str, Enum):
    JSON = "JSON"
    TEXT = "TEXT"


class ErrorPolicy(str, Enum):
    THROW = "THROW"
    LOG = "LOG"
    IGNORE = "IGNORE"


LEVEL_NAMES: tuple[str, ...] = tuple(level.name for level in Level)

# Width of the longest level name, used for uniform padding.
LEVEL_NAME_WIDTH = max(len(name) for name in LEVEL_NAMES)
