from __future__ import annotations

import math
import re
from dataclasses import dataclass

INHERIT = "inherit"

_HEX_PATTERN = re.compile(r"^#?([0-9a-fA-F]{6})$")

NAMED_COLORS: dict[str, str] = {
    "red": "#ff0000",
    "green": "#00ff00",
    "blue": "#0000ff",
    "yellow": "#ffff00",
    "orange": "#ffa500",
    "pink": "#ff00ff",
    "magenta": "#ff00ff",
    "cyan": "#00ffff",
    "aqua": "#00ffff",
    "white": "#ffffff",
    "black": "#000000",
    "gray": "#808080",
    "grey": "#808080",
    "purple": "#800080",
    "brown": "#8b4513",
    "acid": "#b0ff00",
    "default": INHERIT,
}


@dataclass(slots=True, frozen=True)
class FontStyle:
    weight: int | None = None
    size: str | None = None

    def css(self) -> str:
        parts = []
        if self.size is not None:
            parts.append(f"font-size: {self.size}")
        if self.weight is not None:
            parts.append(f"font-weight: {self.weight}")
        return "; ".join(parts)


FONTS: dict[str, FontStyle] = {
    "default": FontStyle(),
    "default-bold": FontStyle(weight=700),
    "default-semibold": FontStyle(weight=600),
    "default-small": FontStyle(size="0.85em"),
    "default-small-bold": FontStyle(weight=700, size="0.85em"),
    "default-small-semibold": FontStyle(weight=600, size="0.85em"),
    "default-large": FontStyle(size="1.2em"),
    "default-large-bold": FontStyle(weight=700, size="1.2em"),
    "default-large-semibold": FontStyle(weight=600, size="1.2em"),
    "heading-1": FontStyle(weight=700, size="1.5em"),
    "heading-2": FontStyle(weight=700, size="1.25em"),
}


def _channel(raw: str) -> int:
    try:
        value = float(raw)
    except ValueError:
        value = 1.0
    if not math.isfinite(value):
        value = 1.0
    return int(min(1.0, max(0.0, value)) * 255)


def _parse_rgb(value: str) -> str:
    channels = {"r": "1", "g": "1", "b": "1"}
    for part in value.split(","):
        key, sep, raw = part.strip().partition("=")
        if sep and key in channels:
            channels[key] = raw.strip()
    r, g, b = (_channel(channels[k]) for k in ("r", "g", "b"))
    return f"rgb({r}, {g}, {b})"


def resolve_color(value: str) -> str:
    """Map a ``[color=...]`` value onto a CSS color, or ``inherit``.

    Only palette names, 6-digit hex and the ``r=,g=,b=`` float form are
    accepted; the result never echoes unvalidated input.
    """
    value = value.strip()
    if "=" in value or "," in value:
        return _parse_rgb(value)

    named = NAMED_COLORS.get(value.lower())
    if named is not None:
        return named

    match = _HEX_PATTERN.match(value)
    if match:
        return f"#{match.group(1).lower()}"
    return INHERIT


def resolve_font(value: str) -> FontStyle | None:
    return FONTS.get(value.strip().lower())
