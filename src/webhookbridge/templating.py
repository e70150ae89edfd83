"""Placeholder substitution for webhook URLs and parameter values.

Three families of placeholders are understood:

    ${level.*} / ${intensity.*}   derived from a 0-254 level
    ${time.millis}                current epoch time in milliseconds
    ${color.*}                    derived from an HSV triple

Anything that does not match a known placeholder is left untouched, so
templates with typos or foreign ``${...}`` tokens pass through verbatim.
"""

import math
import re
import time
from typing import Optional, Union

Number = Union[int, float]

MAX_LEVEL = 254

_LEVEL_PATTERN = re.compile(
    r"\$\{(?:level|intensity)\."
    r"(percent\.hex|byte\.hex|decimal_percent|percent|byte"
    r"|previous_percent\.hex|previous_byte\.hex|previous_decimal_percent"
    r"|previous_percent|previous_byte"
    r"|math\((?:floor|ceil|round|abs|sqrt)\)(?:\.hex)?)\}"
)
_MATH_PATTERN = re.compile(r"math\((floor|ceil|round|abs|sqrt)\)(\.hex)?")
_BRIGHTNESS_ALIAS = "${brightness}"
_TIME_PATTERN = re.compile(r"\$\{time\.millis\}")
_COLOR_PATTERN = re.compile(r"\$\{color\.(rgbx|rx|gx|bx|hsb|r|g|b|h|s)\}")


def round_half_up(value: Number) -> int:
    """Round .5 away from zero for positives, matching browser-side Math.round."""
    return math.floor(value + 0.5)


def format_number(value: Number) -> str:
    """Render a number the way it is expected to appear in a URL.

    Whole floats lose their trailing ``.0`` so ``2.0`` renders as ``2``.
    """
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_hex(value: Number) -> str:
    """Two-digit (at least) lowercase hex of a rounded non-negative number."""
    return format(max(0, round_half_up(value)), "02x")


_MATH_FUNCTIONS = {
    "floor": math.floor,
    "ceil": math.ceil,
    "round": round_half_up,
    "abs": abs,
    "sqrt": math.sqrt,
}


def level_to_percent(level: Number) -> int:
    return round_half_up(level / MAX_LEVEL * 100)


def _level_values(current: Number, previous: Number) -> dict[str, str]:
    percent = level_to_percent(current)
    previous_percent = level_to_percent(previous)
    return {
        "percent": str(percent),
        "decimal_percent": f"{current / MAX_LEVEL:.2f}",
        "byte": format_number(current),
        "percent.hex": to_hex(percent),
        "byte.hex": to_hex(current),
        "previous_percent": str(previous_percent),
        "previous_decimal_percent": f"{previous / MAX_LEVEL:.2f}",
        "previous_byte": format_number(previous),
        "previous_percent.hex": to_hex(previous_percent),
        "previous_byte.hex": to_hex(previous),
    }


def render_level(text: str, current_level: Number, previous_level: Number) -> str:
    """Replace level/intensity placeholders.

    Args:
        text: Template string
        current_level: Level being applied (0-254)
        previous_level: Level stored from the last level-changing command

    Returns:
        The template with every recognised level placeholder substituted
    """
    values = _level_values(current_level, previous_level)

    def _replace(match: re.Match) -> str:
        key = match.group(1)
        math_match = _MATH_PATTERN.fullmatch(key)
        if math_match:
            result = _MATH_FUNCTIONS[math_match.group(1)](current_level)
            if math_match.group(2):
                return to_hex(result)
            return format_number(result)
        return values[key]

    result = _LEVEL_PATTERN.sub(_replace, text)
    return result.replace(_BRIGHTNESS_ALIAS, values["percent"])


def render_time(text: str) -> str:
    """Replace ``${time.millis}`` with the current epoch time in milliseconds."""
    millis = str(int(time.time() * 1000))
    return _TIME_PATTERN.sub(lambda _: millis, text)


def _clamp_channel(value: float) -> int:
    return min(255, max(0, round_half_up(value * 255)))


def hsv_to_rgb(hue: Number, saturation: Number, brightness: Number) -> tuple[int, int, int]:
    """Convert hue (degrees) and saturation/brightness (0-100) to 8-bit RGB."""
    s = saturation / 100
    v = brightness / 100
    c = v * s
    sector = (hue / 60) % 6
    x = c * (1 - abs(sector % 2 - 1))
    m = v - c

    if sector < 1:
        r, g, b = c, x, 0.0
    elif sector < 2:
        r, g, b = x, c, 0.0
    elif sector < 3:
        r, g, b = 0.0, c, x
    elif sector < 4:
        r, g, b = 0.0, x, c
    elif sector < 5:
        r, g, b = x, 0.0, c
    else:
        r, g, b = c, 0.0, x

    return _clamp_channel(r + m), _clamp_channel(g + m), _clamp_channel(b + m)


def render_color(text: str, hue: Number, saturation: Number, brightness: Number) -> str:
    """Replace ``${color.*}`` placeholders from an HSV triple."""
    r, g, b = hsv_to_rgb(hue, saturation, brightness)
    rx, gx, bx = (format(channel, "02x") for channel in (r, g, b))
    values = {
        "r": str(r),
        "g": str(g),
        "b": str(b),
        "rx": rx,
        "gx": gx,
        "bx": bx,
        "rgbx": rx + gx + bx,
        "hsb": ",".join(format_number(v) for v in (hue, saturation, brightness)),
        "h": format_number(hue),
        "s": format_number(saturation),
    }
    return _COLOR_PATTERN.sub(lambda match: values[match.group(1)], text)


def render_template(
    text: str,
    current_level: Number,
    previous_level: Number,
    hue: Optional[Number] = None,
    saturation: Optional[Number] = None,
    brightness: Optional[Number] = None,
    include_time: bool = True,
) -> str:
    """Run the full substitution pipeline: level, then time, then color.

    Color substitution only runs when at least one of hue, saturation or
    brightness is given; missing components default to 0.
    """
    result = render_level(text, current_level, previous_level)
    if include_time:
        result = render_time(result)
    if hue is not None or saturation is not None or brightness is not None:
        result = render_color(result, hue or 0, saturation or 0, brightness or 0)
    return result
