"""
ANSI styling helpers and the source color resolver.
"""

from __future__ import annotations

import re
from functools import partial
from typing import Callable, Sequence, Union

from .exceptions import InvalidColorError

Style = Callable[[str], str]
ColorSpec = Union[str, int, Sequence[int], None]

_HEX_PATTERN = re.compile(r"[0-9a-fA-F]{6}")

FG_RESET = "39"
BG_RESET = "49"


def no_color(text: str) -> str:
    return text


def _wrap(text: str, *, open_code: str, close_code: str) -> str:
    opener, closer = f"\x1b[{open_code}m", f"\x1b[{close_code}m"
    # A nested style sharing our reset hands control back to us, not the terminal
    return f"{opener}{text.replace(closer, opener)}{closer}"


def sgr(open_code: str, close_code: str = FG_RESET) -> Style:
    """Build a style from a raw SGR parameter string."""
    return partial(_wrap, open_code=open_code, close_code=close_code)


def hex_style(hex_color: str, *, background: bool = False) -> Style:
    """24-bit foreground (or background) style for a 6-digit hex color."""
    value = int(hex_color, 16)
    r, g, b = (value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF
    if background:
        return sgr(f"48;2;{r};{g};{b}", BG_RESET)
    return sgr(f"38;2;{r};{g};{b}", FG_RESET)


def chain(*styles: Style) -> Style:
    """Compose styles; the last one is applied first."""

    def _apply(text: str) -> str:
        for style in reversed(styles):
            text = style(text)
        return text

    return _apply


# =============================================================================
# Named 16-color styles
# =============================================================================

bold = sgr("1", "22")
black = sgr("30")
white = sgr("37")
yellow = sgr("33")
gray = sgr("90")
black_bright = gray
white_bright = sgr("97")
yellow_bright = sgr("93")
bg_red_bright = sgr("101", BG_RESET)


# =============================================================================
# Source color resolution
# =============================================================================


def normalize_color(spec: ColorSpec) -> str | None:
    """Normalize a color spec to a lowercase 6-digit hex string (no ``#``).

    Accepts a hex string with optional leading ``#``, an int in ``[0, 2**24)`` or a
    sequence of three ints in ``[0, 255]``. ``None`` and ``""`` mean no color.
    """
    if spec is None or spec == "":
        return None

    color: object = spec
    if isinstance(color, (list, tuple)):
        if len(color) != 3 or not all(
            isinstance(v, int) and not isinstance(v, bool) and 0 <= v < 256 for v in color
        ):
            raise InvalidColorError(
                f"Expected sourceColor to be an array of 3 numbers between 0 and 255, but received {spec!r} instead",
                received=spec,
            )
        color = (color[0] << 16) + (color[1] << 8) + color[2]

    if isinstance(color, int) and not isinstance(color, bool):
        if not 0 <= color < (1 << 24):
            raise InvalidColorError(
                f"Expected sourceColor to be in range 0 to 16777215, but received {spec!r} instead",
                received=spec,
            )
        color = f"{color:06x}"

    if not isinstance(color, str):
        raise InvalidColorError(
            f"Expected sourceColor to be a hex string, int or RGB triple, but received {spec!r} instead",
            received=spec,
        )

    if color.startswith("#"):
        color = color[1:]
    if not _HEX_PATTERN.fullmatch(color):
        raise InvalidColorError(
            f"Expected sourceColor to be a hex string of length 6, but received {spec!r} instead",
            received=spec,
        )
    return color.lower()


def resolve_color(spec: ColorSpec) -> Style:
    """Compile a color spec into a reusable styling function."""
    color = normalize_color(spec)
    if color is None:
        return no_color
    return hex_style(color)
