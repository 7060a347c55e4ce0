"""
Color difference metrics.

RGB metrics work on 0..255 channels. The ΔE family accepts either colors
(converted through sRGB → XYZ → L*a*b*) or ``LAB`` tuples directly.
"""

import math
from typing import Iterable, Sequence, Tuple, Union

import numpy as np

from pixelpalette.errors import InvalidParameterError
from pixelpalette.services.colors.conversions import LAB, ColorLike, rgb_components, rgb_to_hsb, rgb_to_lab

LabLike = Union[LAB, ColorLike]

# Graphic-arts application constants for CIE94
CIE94_K1 = 0.045
CIE94_K2 = 0.015


def _as_lab(color: LabLike) -> LAB:
    if isinstance(color, LAB):
        return color
    return rgb_to_lab(color)


def euclidean_distance(color1: ColorLike, color2: ColorLike) -> float:
    r1, g1, b1 = rgb_components(color1)
    r2, g2, b2 = rgb_components(color2)
    return math.sqrt((r1 - r2) ** 2 + (g1 - g2) ** 2 + (b1 - b2) ** 2)


def manhattan_distance(color1: ColorLike, color2: ColorLike) -> int:
    r1, g1, b1 = rgb_components(color1)
    r2, g2, b2 = rgb_components(color2)
    return abs(r1 - r2) + abs(g1 - g2) + abs(b1 - b2)


def weighted_rgb_distance(color1: ColorLike, color2: ColorLike,
                          weights: Tuple[float, float, float] = (1.0, 1.0, 1.0)) -> float:
    """
    Euclidean RGB distance with per-channel weights.

    Raises:
        InvalidParameterError: If any weight is negative
    """
    w_r, w_g, w_b = weights
    if min(w_r, w_g, w_b) < 0:
        raise InvalidParameterError(f"Weights must be non-negative, got {weights}")
    r1, g1, b1 = rgb_components(color1)
    r2, g2, b2 = rgb_components(color2)
    return math.sqrt(w_r * (r1 - r2) ** 2 + w_g * (g1 - g2) ** 2 + w_b * (b1 - b2) ** 2)


def delta_e_76(color1: LabLike, color2: LabLike) -> float:
    """CIE76: straight-line distance in L*a*b*."""
    l1, a1, b1 = _as_lab(color1)
    l2, a2, b2 = _as_lab(color2)
    return math.sqrt((l1 - l2) ** 2 + (a1 - a2) ** 2 + (b1 - b2) ** 2)


def delta_e_94(color1: LabLike, color2: LabLike,
               k_l: float = 1.0, k_c: float = 1.0, k_h: float = 1.0) -> float:
    """CIE94 with graphic-arts weighting; ``color1`` is the reference."""
    l1, a1, b1 = _as_lab(color1)
    l2, a2, b2 = _as_lab(color2)

    c1 = math.hypot(a1, b1)
    c2 = math.hypot(a2, b2)
    delta_l = l1 - l2
    delta_c = c1 - c2
    delta_h_sq = max((a1 - a2) ** 2 + (b1 - b2) ** 2 - delta_c ** 2, 0.0)

    s_l = 1.0
    s_c = 1.0 + CIE94_K1 * c1
    s_h = 1.0 + CIE94_K2 * c1

    return math.sqrt(
        (delta_l / (k_l * s_l)) ** 2
        + (delta_c / (k_c * s_c)) ** 2
        + delta_h_sq / (k_h * s_h) ** 2
    )


def delta_e_2000(color1: LabLike, color2: LabLike,
                 k_l: float = 1.0, k_c: float = 1.0, k_h: float = 1.0) -> float:
    """CIEDE2000 color difference (Sharma, Wu & Dalal formulation)."""
    l1, a1, b1 = _as_lab(color1)
    l2, a2, b2 = _as_lab(color2)

    c_bar = (math.hypot(a1, b1) + math.hypot(a2, b2)) / 2
    g = 0.5 * (1 - math.sqrt(c_bar ** 7 / (c_bar ** 7 + 25 ** 7)))
    a1p, a2p = (1 + g) * a1, (1 + g) * a2
    c1p, c2p = math.hypot(a1p, b1), math.hypot(a2p, b2)
    h1p = math.degrees(math.atan2(b1, a1p)) % 360 if c1p else 0.0
    h2p = math.degrees(math.atan2(b2, a2p)) % 360 if c2p else 0.0

    delta_lp = l2 - l1
    delta_cp = c2p - c1p
    if c1p * c2p == 0:
        delta_hp = 0.0
    elif abs(h2p - h1p) <= 180:
        delta_hp = h2p - h1p
    elif h2p - h1p > 180:
        delta_hp = h2p - h1p - 360
    else:
        delta_hp = h2p - h1p + 360
    delta_big_hp = 2 * math.sqrt(c1p * c2p) * math.sin(math.radians(delta_hp / 2))

    l_bar_p = (l1 + l2) / 2
    c_bar_p = (c1p + c2p) / 2
    if c1p * c2p == 0:
        h_bar_p = h1p + h2p
    elif abs(h1p - h2p) <= 180:
        h_bar_p = (h1p + h2p) / 2
    elif h1p + h2p < 360:
        h_bar_p = (h1p + h2p + 360) / 2
    else:
        h_bar_p = (h1p + h2p - 360) / 2

    t = (1
         - 0.17 * math.cos(math.radians(h_bar_p - 30))
         + 0.24 * math.cos(math.radians(2 * h_bar_p))
         + 0.32 * math.cos(math.radians(3 * h_bar_p + 6))
         - 0.20 * math.cos(math.radians(4 * h_bar_p - 63)))
    delta_theta = 30 * math.exp(-(((h_bar_p - 275) / 25) ** 2))
    r_c = 2 * math.sqrt(c_bar_p ** 7 / (c_bar_p ** 7 + 25 ** 7))
    s_l = 1 + (0.015 * (l_bar_p - 50) ** 2) / math.sqrt(20 + (l_bar_p - 50) ** 2)
    s_c = 1 + 0.045 * c_bar_p
    s_h = 1 + 0.015 * c_bar_p * t
    r_t = -math.sin(math.radians(2 * delta_theta)) * r_c

    term_l = delta_lp / (k_l * s_l)
    term_c = delta_cp / (k_c * s_c)
    term_h = delta_big_hp / (k_h * s_h)
    return math.sqrt(term_l ** 2 + term_c ** 2 + term_h ** 2 + r_t * term_c * term_h)


def hsb_distance(color1: ColorLike, color2: ColorLike) -> float:
    """
    Distance in HSB with the hue difference taken around the wheel.

    Hue contributes in degrees, saturation and brightness on 0..1, so hue
    dominates unless the hues are close.
    """
    h1, s1, v1 = rgb_to_hsb(color1)
    h2, s2, v2 = rgb_to_hsb(color2)
    delta_h = min(abs(h1 - h2), 360 - abs(h1 - h2))
    return math.sqrt(delta_h ** 2 + (s1 - s2) ** 2 + (v1 - v2) ** 2)


def covariance_matrix(colors: Iterable[ColorLike]) -> np.ndarray:
    """3×3 sample covariance of RGB channels."""
    samples = np.array([rgb_components(c) for c in colors], dtype=np.float64)
    if len(samples) < 2:
        raise InvalidParameterError("At least two colors are needed for a covariance matrix")
    return np.cov(samples, rowvar=False)


def mahalanobis_distance(color1: ColorLike, color2: ColorLike,
                         covariance: Union[np.ndarray, Sequence[Sequence[float]]]) -> float:
    """
    Mahalanobis distance between two RGB colors under ``covariance``.

    Raises:
        InvalidParameterError: If the covariance is not an invertible 3×3 matrix
    """
    cov = np.asarray(covariance, dtype=np.float64)
    if cov.shape != (3, 3):
        raise InvalidParameterError(f"Covariance must be 3x3, got shape {cov.shape}")
    if np.linalg.matrix_rank(cov) < 3:
        raise InvalidParameterError("Covariance matrix is singular")
    try:
        inverse = np.linalg.inv(cov)
    except np.linalg.LinAlgError as e:
        raise InvalidParameterError(f"Covariance matrix is not invertible: {e}") from e

    diff = np.subtract(rgb_components(color1), rgb_components(color2), dtype=np.float64)
    return float(math.sqrt(max(float(diff @ inverse @ diff), 0.0)))


def chroma_difference_lab(color1: LabLike, color2: LabLike) -> float:
    """Absolute difference of CIE chroma, sqrt(a² + b²)."""
    _, a1, b1 = _as_lab(color1)
    _, a2, b2 = _as_lab(color2)
    return abs(math.hypot(a1, b1) - math.hypot(a2, b2))
