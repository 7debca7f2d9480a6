"""
CSS color helpers.

Templates store their colors the way the browser editor writes them
(``#ffffff``, ``rgba(0,0,0,0.55)``, named colors). PIL's ImageColor does not
accept fractional alpha values, so rgb()/rgba() are parsed here and
everything else is handed to PIL.
"""

from __future__ import annotations

import re

from PIL import ImageColor

RGBA = tuple[int, int, int, int]

TRANSPARENT: RGBA = (0, 0, 0, 0)

_FUNC_RE = re.compile(r"^rgba?\(\s*([^)]*)\)$", re.IGNORECASE)
_LENGTH_RE = re.compile(r"^(-?\d+(?:\.\d+)?)(px)?$")


def _channel(value: str) -> int:
    value = value.strip()
    if value.endswith("%"):
        return round(max(0.0, min(100.0, float(value[:-1]))) * 2.55)
    return max(0, min(255, round(float(value))))


def _alpha(value: str) -> int:
    value = value.strip()
    if value.endswith("%"):
        return round(max(0.0, min(100.0, float(value[:-1]))) * 2.55)
    return round(max(0.0, min(1.0, float(value))) * 255)


def parse_color(value: str) -> RGBA:
    """
    Parses a CSS color string.

    :param value: E.g. "#fff", "#11182780", "rgba(0,0,0,0.55)", "white"
    :return: The color as RGBA tuple in 0..255
    :raises ValueError: If the color can not be parsed
    """
    text = value.strip()
    if text.lower() == "transparent":
        return TRANSPARENT
    match = _FUNC_RE.match(text)
    if match:
        parts = [p for p in re.split(r"[\s,/]+", match.group(1).strip()) if p]
        if len(parts) not in (3, 4):
            raise ValueError(f"Invalid color: {value!r}")
        r, g, b = (_channel(p) for p in parts[:3])
        a = _alpha(parts[3]) if len(parts) == 4 else 255
        return r, g, b, a
    try:
        color = ImageColor.getrgb(text)
    except ValueError as e:
        raise ValueError(f"Invalid color: {value!r}") from e
    if len(color) == 3:
        return color[0], color[1], color[2], 255
    return color[0], color[1], color[2], color[3]


def parse_length(value: str) -> float:
    """Parses a CSS length such as "12px" or "0" into pixels."""
    match = _LENGTH_RE.match(value.strip())
    if not match:
        raise ValueError(f"Invalid length: {value!r}")
    return float(match.group(1))


def split_shadow(value: str) -> tuple[list[float], str]:
    """
    Splits a CSS box-shadow into its lengths and its color.

    Only the first shadow of a comma separated list is used.

    :param value: E.g. "0 2px 12px rgba(0,0,0,0.6)"
    :return: The lengths (offset x, offset y, blur, spread...) and the color text
    """
    # Commas inside rgba() must not split the list
    depth = 0
    first = value
    for i, ch in enumerate(value):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == "," and depth == 0:
            first = value[:i]
            break
    color_match = re.search(r"(rgba?\([^)]*\)|#[0-9a-fA-F]{3,8})", first)
    if color_match:
        color = color_match.group(1)
        rest = first[: color_match.start()] + first[color_match.end():]
    else:
        tokens = first.split()
        color = "black"
        for token in tokens:
            if not _LENGTH_RE.match(token):
                color = token
        rest = " ".join(t for t in tokens if t != color)
    lengths = [parse_length(t) for t in rest.split() if t and t != "inset"]
    return lengths, color


__all__ = ["RGBA", "TRANSPARENT", "parse_color", "parse_length", "split_shadow"]
