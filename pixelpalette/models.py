"""
PixelPalette value types.

Color is the immutable 8-bit RGBA value passed between the sampler, the
clustering engine and the renderer. PaletteModel is the caller-owned result
of a palette run.
"""

import io
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from pixelpalette.errors import InvalidParameterError

LUMA_RED = 0.299
LUMA_GREEN = 0.587
LUMA_BLUE = 0.114


def _check_channel(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidParameterError(f"{name} channel must be an integer, got {type(value).__name__}")
    value = int(value)
    if not 0 <= value <= 255:
        raise InvalidParameterError(f"{name} channel out of range [0, 255]: {value}")
    return value


@dataclass(frozen=True)
class Color:
    """8-bit RGB color with an optional alpha channel (255 = opaque)."""
    red: int
    green: int
    blue: int
    alpha: int = 255

    def __post_init__(self):
        for name in ("red", "green", "blue", "alpha"):
            object.__setattr__(self, name, _check_channel(name, getattr(self, name)))

    @classmethod
    def from_hex(cls, hex_color: str) -> "Color":
        """Parse #RRGGBB or #RRGGBBAA (leading # optional)."""
        if not isinstance(hex_color, str):
            raise InvalidParameterError(f"Hex color must be a string: {hex_color!r}")
        hex_clean = hex_color.strip().lstrip('#')
        if len(hex_clean) not in (6, 8):
            raise InvalidParameterError(f"Invalid hex color format: {hex_color}")
        try:
            channels = [int(hex_clean[i:i + 2], 16) for i in range(0, len(hex_clean), 2)]
        except ValueError:
            raise InvalidParameterError(f"Invalid hex color digits: {hex_color}")
        return cls(*channels)

    @classmethod
    def from_rgba(cls, values: Sequence[int]) -> "Color":
        """Build a Color from an (r, g, b) or (r, g, b, a) sequence."""
        values = [int(v) for v in values]
        if len(values) == 3:
            return cls(values[0], values[1], values[2])
        if len(values) == 4:
            return cls(values[0], values[1], values[2], values[3])
        raise InvalidParameterError(f"Expected 3 or 4 channels, got {len(values)}")

    @property
    def rgb(self) -> Tuple[int, int, int]:
        return (self.red, self.green, self.blue)

    @property
    def rgba(self) -> Tuple[int, int, int, int]:
        return (self.red, self.green, self.blue, self.alpha)

    @property
    def hex(self) -> str:
        """Uppercase, zero-padded #RRGGBB (alpha is not encoded)."""
        return f"#{self.red:02X}{self.green:02X}{self.blue:02X}"

    @property
    def luminance(self) -> float:
        """Perceived brightness on a 0-255 scale."""
        return LUMA_RED * self.red + LUMA_GREEN * self.green + LUMA_BLUE * self.blue

    def distance_to(self, other: "Color") -> float:
        """Euclidean distance in RGB space, alpha ignored."""
        dr = self.red - other.red
        dg = self.green - other.green
        db = self.blue - other.blue
        return math.sqrt(dr * dr + dg * dg + db * db)

    def with_alpha(self, alpha: int) -> "Color":
        return Color(self.red, self.green, self.blue, alpha)

    def __str__(self) -> str:
        return self.hex


BLACK = Color(0, 0, 0)
WHITE = Color(255, 255, 255)


def colors_to_array(colors: Iterable[Color]) -> np.ndarray:
    """Stack colors into an (N, 4) uint8 RGBA array."""
    rows = [c.rgba for c in colors]
    if not rows:
        return np.zeros((0, 4), dtype=np.uint8)
    return np.asarray(rows, dtype=np.uint8)


def array_to_colors(pixels: np.ndarray) -> List[Color]:
    """Convert an (N, 3) or (N, 4) array into Colors, row order preserved."""
    pixels = np.asarray(pixels)
    if pixels.size == 0:
        return []
    if pixels.ndim != 2 or pixels.shape[1] not in (3, 4):
        raise InvalidParameterError(f"Expected (N, 3) or (N, 4) pixel array, got shape {pixels.shape}")
    return [Color.from_rgba(row) for row in pixels.tolist()]


@dataclass(frozen=True)
class PaletteModel:
    """Rendered palette: every computed color plus the RGBA raster."""
    palette: Tuple[Color, ...]
    image: np.ndarray = field(repr=False, compare=False)
    path: Optional[Path] = None

    @property
    def hex_codes(self) -> List[str]:
        return [c.hex for c in self.palette]

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])

    def to_pil(self) -> Image.Image:
        return Image.fromarray(np.ascontiguousarray(self.image, dtype=np.uint8))

    def to_png_bytes(self) -> bytes:
        buffer = io.BytesIO()
        self.to_pil().save(buffer, format="PNG")
        return buffer.getvalue()
