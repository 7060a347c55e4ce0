"""
Swatch Rendering Module

Lays out palette colors as solid blocks on a transparent RGBA canvas and
labels each block with its hex code in a contrasting color.
"""

import base64
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import cv2
import numpy as np
from loguru import logger
from PIL import Image

from pixelpalette.config import config
from pixelpalette.errors import InvalidParameterError, PaletteIOError
from pixelpalette.models import BLACK, WHITE, Color

# Labels switch from white to black at this perceived brightness (0-255 scale,
# 0.299R + 0.587G + 0.114B).
LABEL_LUMINANCE_THRESHOLD = 186

LABEL_MARGIN_PX = 5
LABEL_BASELINE_OFFSET_PX = 10


def contrasting_label_color(color: Color) -> Color:
    """White text on dark blocks, black text on light ones."""
    return BLACK if color.luminance >= LABEL_LUMINANCE_THRESHOLD else WHITE


@dataclass(frozen=True)
class RenderedPalette:
    """Canvas plus every color that was requested."""
    image: np.ndarray = field(repr=False, compare=False)
    palette: Tuple[Color, ...]
    drawn: int


def validate_render_params(block_width: int, block_height: int,
                           canvas_width: int, canvas_height: int) -> None:
    """Validate palette rendering dimensions."""
    for name, value in (("block_width", block_width), ("block_height", block_height),
                        ("canvas_width", canvas_width), ("canvas_height", canvas_height)):
        if not config.validate_dimension(value):
            raise InvalidParameterError(f"{name} must be a positive integer, got {value!r}")


class PaletteRenderer:
    """Draws palette blocks with hex labels into an RGBA raster."""

    def __init__(self,
                 font_scale: Optional[float] = None,
                 label_margin: int = LABEL_MARGIN_PX,
                 label_baseline_offset: int = LABEL_BASELINE_OFFSET_PX,
                 font_face: int = cv2.FONT_HERSHEY_SIMPLEX):
        self.font_scale = config.LABEL_FONT_SCALE if font_scale is None else font_scale
        self.label_margin = label_margin
        self.label_baseline_offset = label_baseline_offset
        self.font_face = font_face

    @staticmethod
    def capacity(block_width: int, block_height: int,
                 canvas_width: int, canvas_height: int, vertical: bool = True) -> int:
        """How many blocks fit along the layout axis."""
        return canvas_height // block_height if vertical else canvas_width // block_width

    def render(self, centroids: Sequence[Color],
               block_width: int, block_height: int,
               canvas_width: int, canvas_height: int,
               vertical: bool = True) -> RenderedPalette:
        """
        Render palette blocks onto a transparent canvas.

        Args:
            centroids: Colors to draw, in order
            block_width: Width of each color block in pixels
            block_height: Height of each color block in pixels
            canvas_width: Output width in pixels
            canvas_height: Output height in pixels
            vertical: Stack blocks top to bottom (centered horizontally) when
                True, left to right (centered vertically) when False

        Returns:
            RenderedPalette with a canvas_height×canvas_width×4 uint8 image.
            Colors beyond the layout capacity are kept in ``palette`` but not drawn.

        Raises:
            InvalidParameterError: If any dimension is not a positive integer
        """
        validate_render_params(block_width, block_height, canvas_width, canvas_height)
        palette = tuple(centroids)

        img = np.zeros((canvas_height, canvas_width, 4), dtype=np.uint8)
        capacity = self.capacity(block_width, block_height, canvas_width, canvas_height, vertical)
        visible = palette[:capacity]

        if len(palette) > capacity:
            logger.debug(f"Canvas fits {capacity} blocks; skipping {len(palette) - capacity} colors")

        for i, color in enumerate(visible):
            if vertical:
                x = (canvas_width - block_width) // 2
                y = i * block_height
            else:
                x = i * block_width
                y = (canvas_height - block_height) // 2

            self._draw_block(img, color, x, y, block_width, block_height)

        logger.debug(f"Rendered {len(visible)} blocks on {canvas_width}x{canvas_height} canvas")
        return RenderedPalette(image=img, palette=palette, drawn=len(visible))

    def _draw_block(self, img: np.ndarray, color: Color, x: int, y: int,
                    block_width: int, block_height: int) -> None:
        canvas_height, canvas_width = img.shape[:2]

        x_start, x_end = max(x, 0), min(x + block_width, canvas_width)
        y_start, y_end = max(y, 0), min(y + block_height, canvas_height)
        if x_start >= x_end or y_start >= y_end:
            return

        block = np.empty((y_end - y_start, x_end - x_start, 4), dtype=np.uint8)
        block[...] = color.with_alpha(255).rgba

        # Label coordinates are block-local so the text is clipped to its block
        label = contrasting_label_color(color)
        cv2.putText(
            block, color.hex,
            (x + self.label_margin - x_start, y + block_height - self.label_baseline_offset - y_start),
            self.font_face, self.font_scale, label.rgba, 1, cv2.LINE_AA
        )
        img[y_start:y_end, x_start:x_end] = block

    def save(self, image: np.ndarray, path: Union[str, Path]) -> Path:
        """
        Write a rendered canvas to ``path`` as PNG.

        Raises:
            PaletteIOError: If the file cannot be written
        """
        output = Path(path)
        try:
            Image.fromarray(np.ascontiguousarray(image, dtype=np.uint8)).save(output, format="PNG")
        except OSError as e:
            logger.error(f"Failed to save palette to {output}: {e}")
            raise PaletteIOError(f"Could not write palette image to {output}: {e}") from e

        logger.info(f"Palette saved to {output.resolve()}")
        return output


def encode_png_base64(image: np.ndarray) -> str:
    """Encode an RGBA canvas as base64 PNG."""
    bgra = cv2.cvtColor(np.ascontiguousarray(image, dtype=np.uint8), cv2.COLOR_RGBA2BGRA)
    success, buffer = cv2.imencode('.png', bgra)
    if not success:
        raise RuntimeError("Failed to encode palette as PNG")
    return base64.b64encode(buffer.tobytes()).decode('ascii')
