"""
Color harmony schemes.

Hue rotations are done in HLS (via ``colorsys``) so lightness and saturation
of the base color are preserved. Every scheme starts with the base color.
"""

import colorsys
from typing import List

from pixelpalette.errors import InvalidParameterError
from pixelpalette.models import Color


def rotate_hue(h: float, degrees: float) -> float:
    """
    Rotate hue by specified degrees.

    Args:
        h: Original hue [0, 1)
        degrees: Rotation in degrees (can be negative)

    Returns:
        Rotated hue [0, 1) with proper wraparound
    """
    return (h + degrees / 360.0) % 1.0


def rotate_color(color: Color, degrees: float) -> Color:
    """Rotate the hue of ``color`` keeping its lightness, saturation and alpha."""
    h, l, s = colorsys.rgb_to_hls(color.red / 255.0, color.green / 255.0, color.blue / 255.0)
    r, g, b = colorsys.hls_to_rgb(rotate_hue(h, degrees), l, s)
    return Color(
        max(0, min(255, round(r * 255))),
        max(0, min(255, round(g * 255))),
        max(0, min(255, round(b * 255))),
        color.alpha,
    )


def _scheme(color: Color, rotations) -> List[Color]:
    return [color] + [rotate_color(color, degrees) for degrees in rotations]


def complementary(color: Color) -> List[Color]:
    """Base color and its +180° counterpart."""
    return _scheme(color, (180,))


def analogous(color: Color, count: int = 3, step: float = 30.0) -> List[Color]:
    """``count`` colors stepping ``step`` degrees around the wheel from the base."""
    if count < 1:
        raise InvalidParameterError(f"count must be >= 1, got {count}")
    return _scheme(color, [step * i for i in range(1, count)])


def triadic(color: Color) -> List[Color]:
    return _scheme(color, (120, 240))


def tetradic(color: Color) -> List[Color]:
    """Two complementary pairs 60° apart (rectangle)."""
    return _scheme(color, (60, 180, 240))


def square(color: Color) -> List[Color]:
    return _scheme(color, (90, 180, 270))


def monochromatic(color: Color, shades: int = 5) -> List[Color]:
    """
    ``shades`` steps from the base color down to black.

    Step i scales every channel by ``1 - i / (shades - 1)`` (truncated), so the
    first entry is the base and the last is black.
    """
    if shades < 1:
        raise InvalidParameterError(f"shades must be >= 1, got {shades}")
    if shades == 1:
        return [color]

    result = []
    for i in range(shades):
        factor = 1 - i / (shades - 1)
        result.append(Color(int(color.red * factor), int(color.green * factor),
                            int(color.blue * factor), color.alpha))
    return result
