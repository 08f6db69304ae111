"""
Payload formatters.

Each target renders an event with its own style: one JSON record, or one
human-readable line per message line. Rendering reads no clock; the event
carries its timestamp.
"""

from __future__ import annotations

import pprint
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

from . import colors
from .colors import Style, hex_style, no_color
from .events import LogEvent
from .levels import LEVEL_NAME_WIDTH, Level, RenderStyle
from .serialization import UNDEFINED, dumps, format_exception_stack
from .targets import TargetOptions

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def format_time(ms: int, full: bool) -> str:
    """``YYYY-MM-DDTHH:MM:SS.mmmZ`` when ``full``, else ``HH:MM:SS.mmm`` (UTC)."""
    dt = _EPOCH + timedelta(milliseconds=ms)
    millis = f"{dt.microsecond // 1000:03d}"
    if full:
        return f"{dt:%Y-%m-%dT%H:%M:%S}.{millis}Z"
    return f"{dt:%H:%M:%S}.{millis}"


def inspect_value(value: Any, color: bool = False) -> str:
    """Debug representation for non-string message values.

    With ``color``, scalars are styled by type: numbers and booleans yellow,
    ``None`` bold, ``UNDEFINED`` gray. Containers and exceptions stay plain.
    """
    if isinstance(value, str):
        return value
    if value is UNDEFINED:
        return colors.gray("undefined") if color else "undefined"
    if isinstance(value, BaseException):
        return format_exception_stack(value)
    text = pprint.pformat(value, width=80, sort_dicts=False)
    if not color:
        return text
    if value is None:
        return colors.bold(text)
    if isinstance(value, (bool, int, float)):
        return colors.yellow(text)
    return text


# =============================================================================
# Level Themes
# =============================================================================


@dataclass(frozen=True)
class LevelTheme:
    """Styles for one level's line: ``[LEVEL] [source] content``."""

    bracket: Style = no_color
    label: Style = no_color
    source_bracket: Style = no_color
    source_label: Style = no_color
    content: Style = no_color
    header: Style = no_color  # wraps "[LEVEL] [source] " as a whole


PLAIN_THEME = LevelTheme()

_ERROR_DARK = hex_style("9f0000")
_ERROR_LIGHT = hex_style("ff0000")
_FATAL_TEXT = hex_style("0f0f0f")

LEVEL_THEMES: Mapping[Level, LevelTheme] = {
    Level.TRACE: LevelTheme(
        bracket=colors.black_bright,
        label=colors.gray,
        source_bracket=colors.black_bright,
        source_label=colors.gray,
        content=colors.gray,
    ),
    Level.DEBUG: LevelTheme(
        bracket=colors.white,
        label=colors.white_bright,
        content=colors.gray,
    ),
    Level.INFO: LevelTheme(
        bracket=hex_style("0b8e82"),
        label=hex_style("26e2d0"),
    ),
    Level.WARN: LevelTheme(
        bracket=colors.yellow,
        label=colors.yellow_bright,
        source_bracket=colors.yellow,
        source_label=colors.yellow_bright,
        content=colors.yellow_bright,
    ),
    Level.ERROR: LevelTheme(
        bracket=_ERROR_DARK,
        label=_ERROR_LIGHT,
        source_bracket=_ERROR_DARK,
        source_label=_ERROR_LIGHT,
        content=_ERROR_LIGHT,
    ),
    Level.FATAL: LevelTheme(
        bracket=colors.black,
        label=_FATAL_TEXT,
        source_bracket=colors.black,
        source_label=_FATAL_TEXT,
        content=colors.chain(_FATAL_TEXT, colors.bg_red_bright),
        header=colors.bg_red_bright,
    ),
}


# =============================================================================
# Formatters
# =============================================================================


class TextFormatter:
    """``[time] [LEVEL] [component/source] message`` lines."""

    @staticmethod
    def _prefix(event: LogEvent, target: TargetOptions, max_name_length: int, source_style: Style) -> str:
        theme = LEVEL_THEMES[event.level] if target.color else PLAIN_THEME
        name = event.level.name

        display = event.display_name.ljust(max_name_length) if target.uniform else event.display_name
        styled_source = (source_style if target.color else no_color)(display)
        level_padding = " " * (LEVEL_NAME_WIDTH - len(name)) if target.uniform else ""

        header = "".join(
            [
                theme.bracket("["),
                theme.label(name),
                theme.bracket("]"),
                " ",
                level_padding,
                theme.source_bracket("["),
                theme.source_label(styled_source),
                theme.source_bracket("]"),
                " ",
            ]
        )
        return f"[{format_time(event.timestamp, target.full_timestamps)}] {theme.header(header)}"

    @classmethod
    def format(
        cls,
        event: LogEvent,
        target: TargetOptions,
        *,
        max_name_length: int = 0,
        source_style: Style = no_color,
    ) -> str:
        theme = LEVEL_THEMES[event.level] if target.color else PLAIN_THEME
        prefix = cls._prefix(event, target, max_name_length, source_style)
        body = " ".join(inspect_value(message, target.color) for message in event.messages)
        return "\n".join(prefix + theme.content(line) for line in body.split("\n"))


class JsonFormatter:
    """One JSON record per event."""

    @staticmethod
    def record(event: LogEvent, *, full_timestamps: bool = False) -> dict[str, Any]:
        return {
            "timestamp": format_time(event.timestamp, True) if full_timestamps else event.timestamp,
            "level": event.level.name,
            "component": event.component,
            "source": event.source,
            "msg": list(event.messages),
        }

    @classmethod
    def format(cls, event: LogEvent, target: TargetOptions, **_: Any) -> str:
        return dumps(cls.record(event, full_timestamps=target.full_timestamps))


def render_payload(
    event: LogEvent,
    target: TargetOptions,
    *,
    max_name_length: int = 0,
    source_style: Style = no_color,
) -> str:
    """Render ``event`` in ``target``'s style."""
    if target.style == RenderStyle.JSON:
        return JsonFormatter.format(event, target)
    return TextFormatter.format(event, target, max_name_length=max_name_length, source_style=source_style)
