"""
Color mixing: tints, shades, tones, blend modes and gradients.

Mixing results are truncated toward zero and clamped to 0..255. Output
colors are opaque.
"""

from typing import List

from pixelpalette.errors import InvalidParameterError
from pixelpalette.models import BLACK, WHITE, Color
from pixelpalette.services.colors.conversions import hsl_to_rgb, rgb_to_hsl

GRAY = Color(128, 128, 128)


def _check_factor(factor: float, name: str = "factor") -> None:
    if not 0.0 <= factor <= 1.0:
        raise InvalidParameterError(f"{name} must be within [0, 1], got {factor}")


def _clamp(value: float) -> int:
    return max(0, min(255, int(value)))


def mix(base: Color, other: Color, factor: float) -> Color:
    """Linear interpolation ``base * (1 - factor) + other * factor``."""
    _check_factor(factor)
    return Color(*(_clamp(a * (1 - factor) + b * factor) for a, b in zip(base.rgb, other.rgb)))


def tint(color: Color, factor: float) -> Color:
    """Mix toward white."""
    return mix(color, WHITE, factor)


def shade(color: Color, factor: float) -> Color:
    """Mix toward black."""
    return mix(color, BLACK, factor)


def tone(color: Color, factor: float) -> Color:
    """Mix toward medium gray (128, 128, 128)."""
    return mix(color, GRAY, factor)


def tint_hsl(color: Color, factor: float) -> Color:
    """Raise HSL lightness toward 1 by ``factor``, keeping hue and saturation."""
    _check_factor(factor)
    hue, saturation, lightness = rgb_to_hsl(color)
    return hsl_to_rgb(hue, saturation, lightness * (1 - factor) + factor)


def blend_additive(color1: Color, color2: Color) -> Color:
    return Color(*(min(a + b, 255) for a, b in zip(color1.rgb, color2.rgb)))


def _screen(a: int, b: int) -> int:
    return 255 - (255 - a) * (255 - b) // 255


def blend_screen(*colors: Color) -> Color:
    """Screen-blend any number of colors, starting from black."""
    result = BLACK.rgb
    for color in colors:
        result = tuple(_screen(a, b) for a, b in zip(result, color.rgb))
    return Color(*result)


def _soft_light(base: int, blend: int) -> int:
    if blend < 128:
        return _clamp(2 * blend * base // 255)
    return _clamp(255 - 2 * (255 - blend) * (255 - base) // 255)


def blend_soft_light(base: Color, blend: Color) -> Color:
    """Soft-light ``blend`` over ``base``."""
    return Color(*(_soft_light(a, b) for a, b in zip(base.rgb, blend.rgb)))


def linear_gradient(start: Color, end: Color, steps: int) -> List[Color]:
    """
    ``steps`` colors evenly spaced from ``start`` to ``end`` inclusive.

    A single step yields just ``start``.
    """
    if steps < 1:
        raise InvalidParameterError(f"steps must be >= 1, got {steps}")
    if steps == 1:
        return [Color(*start.rgb)]
    return [mix(start, end, i / (steps - 1)) for i in range(steps)]


def shift_hue(color: Color, degrees: float) -> Color:
    """Rotate the HSL hue by ``degrees`` (wraps at 360)."""
    hue, saturation, lightness = rgb_to_hsl(color)
    return hsl_to_rgb((hue + degrees) % 360.0, saturation, lightness)

