"""
Pixel sampling for palette extraction.

Scans an image in row strips on a thread pool and keeps every pixel whose
alpha is above the visibility threshold. Each strip returns its own array;
strips are concatenated in order once all of them finish, so the result is
always in row-major order regardless of scheduling.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

import numpy as np
from loguru import logger

from pixelpalette.config import config
from pixelpalette.errors import InvalidParameterError
from pixelpalette.models import Color, array_to_colors
from pixelpalette.services.imaging import ImageInput, to_rgba_array
from pixelpalette.services.reliability import CancellationToken, check_cancelled


def _scan_strip(rgba: np.ndarray, start_row: int, end_row: int, alpha_threshold: int,
                cancel_token: Optional[CancellationToken]) -> np.ndarray:
    check_cancelled(cancel_token, "pixel sampling")
    strip = rgba[start_row:end_row].reshape(-1, 4)
    return strip[strip[:, 3] > alpha_threshold]


def strip_bounds(height: int, strip_rows: int) -> List[tuple]:
    """Split ``height`` rows into consecutive (start, end) strips."""
    if strip_rows <= 0:
        raise InvalidParameterError(f"strip_rows must be positive, got {strip_rows}")
    return [(start, min(start + strip_rows, height)) for start in range(0, height, strip_rows)]


def extract_pixels(image: ImageInput,
                   alpha_threshold: Optional[int] = None,
                   max_workers: Optional[int] = None,
                   strip_rows: Optional[int] = None,
                   cancel_token: Optional[CancellationToken] = None) -> np.ndarray:
    """
    Collect visible pixels from an image.

    Args:
        image: PIL image or H×W / H×W×3 / H×W×4 uint8 array
        alpha_threshold: Pixels are kept only when alpha > threshold
        max_workers: Thread pool size
        strip_rows: Rows scanned per task
        cancel_token: Checked before each strip is scanned

    Returns:
        (N, 4) uint8 RGBA array in row-major order

    Raises:
        InvalidParameterError: If the threshold or strip size is invalid
        OperationCancelledError: If the token trips mid-scan
    """
    alpha_threshold = config.ALPHA_THRESHOLD if alpha_threshold is None else alpha_threshold
    if not config.validate_alpha_threshold(alpha_threshold):
        raise InvalidParameterError(f"alpha_threshold must be within [0, 255], got {alpha_threshold}")

    rgba = to_rgba_array(image)
    height, width = rgba.shape[:2]
    if height == 0 or width == 0:
        logger.info(f"Empty image ({width}x{height}); no pixels sampled")
        return np.zeros((0, 4), dtype=np.uint8)

    strips = strip_bounds(height, strip_rows or config.SAMPLER_STRIP_ROWS)
    workers = max(1, min(max_workers or config.MAX_WORKERS, len(strips)))

    logger.debug(f"Sampling {width}x{height} image in {len(strips)} strips on {workers} workers")

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(_scan_strip, rgba, start, end, alpha_threshold, cancel_token)
            for start, end in strips
        ]
        # Collect in submission order, not completion order
        parts = [future.result() for future in futures]

    pixels = np.concatenate(parts, axis=0) if parts else np.zeros((0, 4), dtype=np.uint8)

    total = height * width
    logger.info(f"Sampled {len(pixels)}/{total} pixels with alpha > {alpha_threshold}")
    return pixels


def extract_colors(image: ImageInput,
                   alpha_threshold: Optional[int] = None,
                   max_workers: Optional[int] = None,
                   strip_rows: Optional[int] = None,
                   cancel_token: Optional[CancellationToken] = None) -> List[Color]:
    """Same as ``extract_pixels`` but returns Color values."""
    pixels = extract_pixels(image, alpha_threshold, max_workers, strip_rows, cancel_token)
    return array_to_colors(pixels)
