"""
Color space conversions.

Every function takes a ``Color`` or an ``(r, g, b)`` tuple of 0..255 ints.
Hues are in degrees [0, 360); CMYK, saturation, lightness, brightness,
whiteness and blackness are in [0, 1]. XYZ uses the D65 white point on a
0..100 scale unless stated otherwise.
"""

import colorsys
import math
from typing import NamedTuple, Sequence, Tuple, Union

from pixelpalette.errors import InvalidParameterError
from pixelpalette.models import Color

ColorLike = Union[Color, Sequence[int]]

# D65 reference white, 2° observer
REF_X = 95.047
REF_Y = 100.000
REF_Z = 108.883

# CIE constants (epsilon = 216/24389, kappa = 24389/27 rounded as commonly published)
LAB_EPSILON = 0.008856
LAB_KAPPA = 903.3

SRGB_TO_XYZ = (
    (0.4124564, 0.3575761, 0.1804375),
    (0.2126729, 0.7151522, 0.0721750),
    (0.0193339, 0.1191920, 0.9503041),
)

ADOBE_RGB_TO_XYZ = (
    (0.5767309, 0.1855540, 0.1881852),
    (0.2973769, 0.6273491, 0.0752741),
    (0.0270343, 0.0706872, 0.9911085),
)
ADOBE_RGB_GAMMA = 563 / 256

REC2020_TO_XYZ = (
    (0.6369580483012914, 0.14461690358620832, 0.1688809751641721),
    (0.2627002120112671, 0.6779980715188708, 0.05930171646986196),
    (0.0000000000000000, 0.028072693049087428, 1.060985057710791),
)


class CMYK(NamedTuple):
    cyan: float
    magenta: float
    yellow: float
    key: float


class HSB(NamedTuple):
    hue: float
    saturation: float
    brightness: float


class HSL(NamedTuple):
    hue: float
    saturation: float
    lightness: float


class HWB(NamedTuple):
    hue: float
    whiteness: float
    blackness: float


class XYZ(NamedTuple):
    x: float
    y: float
    z: float


class LAB(NamedTuple):
    l: float
    a: float
    b: float


class LCH(NamedTuple):
    l: float
    c: float
    h: float


class LUV(NamedTuple):
    l: float
    u: float
    v: float


def rgb_components(color: ColorLike) -> Tuple[int, int, int]:
    """Validated (r, g, b) ints from a Color or a 3/4-sequence."""
    if isinstance(color, Color):
        return color.rgb
    try:
        r, g, b = (int(c) for c in tuple(color)[:3])
    except (TypeError, ValueError) as e:
        raise InvalidParameterError(f"Expected an (r, g, b) color, got {color!r}") from e
    return Color(r, g, b).rgb


def _normalized(color: ColorLike) -> Tuple[float, float, float]:
    r, g, b = rgb_components(color)
    return r / 255.0, g / 255.0, b / 255.0


def _apply_matrix(matrix, vector) -> Tuple[float, float, float]:
    return tuple(sum(m * v for m, v in zip(row, vector)) for row in matrix)


def _to_byte(value: float) -> int:
    return max(0, min(255, int(round(value * 255))))


# Hex

def rgb_to_hex(color: ColorLike) -> str:
    """``#RRGGBB`` in uppercase."""
    r, g, b = rgb_components(color)
    return f"#{r:02X}{g:02X}{b:02X}"


def hex_to_rgb(hex_color: str) -> Tuple[int, int, int]:
    return Color.from_hex(hex_color).rgb


# Device-dependent models

def rgb_to_cmyk(color: ColorLike) -> CMYK:
    r, g, b = _normalized(color)
    k = 1.0 - max(r, g, b)
    if k >= 1.0:
        return CMYK(0.0, 0.0, 0.0, 1.0)
    return CMYK((1.0 - r - k) / (1.0 - k), (1.0 - g - k) / (1.0 - k), (1.0 - b - k) / (1.0 - k), k)


def rgb_to_hsb(color: ColorLike) -> HSB:
    h, s, v = colorsys.rgb_to_hsv(*_normalized(color))
    return HSB(h * 360.0, s, v)


def hsb_to_rgb(hue: float, saturation: float, brightness: float) -> Color:
    r, g, b = colorsys.hsv_to_rgb((hue % 360.0) / 360.0, saturation, brightness)
    return Color(_to_byte(r), _to_byte(g), _to_byte(b))


def rgb_to_hsl(color: ColorLike) -> HSL:
    h, l, s = colorsys.rgb_to_hls(*_normalized(color))
    return HSL(h * 360.0, s, l)


def hsl_to_rgb(hue: float, saturation: float, lightness: float) -> Color:
    r, g, b = colorsys.hls_to_rgb((hue % 360.0) / 360.0, lightness, saturation)
    return Color(_to_byte(r), _to_byte(g), _to_byte(b))


def rgb_to_hwb(color: ColorLike) -> HWB:
    r, g, b = _normalized(color)
    hue = rgb_to_hsb(color).hue
    return HWB(hue, min(r, g, b), 1.0 - max(r, g, b))


# Linear light

def srgb_to_linear(channel: float) -> float:
    """Inverse sRGB companding of a 0..1 channel."""
    if channel > 0.04045:
        return ((channel + 0.055) / 1.055) ** 2.4
    return channel / 12.92


def linear_to_srgb(channel: float) -> float:
    """sRGB companding of a linear 0..1 channel."""
    if channel > 0.0031308:
        return 1.055 * channel ** (1 / 2.4) - 0.055
    return channel * 12.92


def rgb_to_linear_rgb(color: ColorLike) -> Tuple[float, float, float]:
    return tuple(srgb_to_linear(c) for c in _normalized(color))


def linear_rgb_to_rgb(red: float, green: float, blue: float) -> Color:
    return Color(*(_to_byte(linear_to_srgb(min(max(c, 0.0), 1.0))) for c in (red, green, blue)))


# CIE spaces

def rgb_to_xyz(color: ColorLike, scale: float = 100.0) -> XYZ:
    """sRGB to CIE XYZ (D65)."""
    x, y, z = _apply_matrix(SRGB_TO_XYZ, rgb_to_linear_rgb(color))
    return XYZ(x * scale, y * scale, z * scale)


def _lab_f(t: float) -> float:
    if t > LAB_EPSILON:
        return t ** (1 / 3)
    return (LAB_KAPPA * t + 16) / 116


def xyz_to_lab(xyz: Sequence[float]) -> LAB:
    """CIE XYZ on the 0..100 scale to CIE L*a*b*."""
    x, y, z = xyz
    fx, fy, fz = _lab_f(x / REF_X), _lab_f(y / REF_Y), _lab_f(z / REF_Z)
    return LAB(116 * fy - 16, 500 * (fx - fy), 200 * (fy - fz))


def rgb_to_lab(color: ColorLike) -> LAB:
    return xyz_to_lab(rgb_to_xyz(color))


def lab_to_lch(lab: Sequence[float]) -> LCH:
    l, a, b = lab
    hue = math.degrees(math.atan2(b, a)) % 360.0
    return LCH(l, math.hypot(a, b), hue)


def rgb_to_lch(color: ColorLike) -> LCH:
    return lab_to_lch(rgb_to_lab(color))


def rgb_to_luv(color: ColorLike) -> LUV:
    """sRGB to CIE L*u*v* (D65)."""
    x, y, z = rgb_to_xyz(color)
    yr = y / REF_Y
    l = 116 * yr ** (1 / 3) - 16 if yr > LAB_EPSILON else LAB_KAPPA * yr

    denom = x + 15 * y + 3 * z
    if denom == 0:
        return LUV(l, 0.0, 0.0)

    ref_denom = REF_X + 15 * REF_Y + 3 * REF_Z
    u_prime, v_prime = 4 * x / denom, 9 * y / denom
    u_ref, v_ref = 4 * REF_X / ref_denom, 9 * REF_Y / ref_denom
    return LUV(l, 13 * l * (u_prime - u_ref), 13 * l * (v_prime - v_ref))


# Wide-gamut RGB spaces (0..1 XYZ)

def rgb_to_adobe_rgb_xyz(color: ColorLike) -> XYZ:
    """Interpret channels as Adobe RGB (1998) and convert to XYZ on a 0..1 scale."""
    linear = tuple(c ** ADOBE_RGB_GAMMA for c in _normalized(color))
    return XYZ(*_apply_matrix(ADOBE_RGB_TO_XYZ, linear))


def _rec2020_to_linear(channel: float) -> float:
    if channel < 0.0181:
        return channel / 4.5
    return ((channel + 0.0993) / 1.0993) ** (1 / 0.45)


def rgb_to_rec2020(color: ColorLike) -> XYZ:
    """Interpret channels as ITU-R BT.2020 and convert to XYZ on a 0..1 scale."""
    linear = tuple(_rec2020_to_linear(c) for c in _normalized(color))
    return XYZ(*_apply_matrix(REC2020_TO_XYZ, linear))
