"""
PixelPalette Imaging Utilities
Handles image decoding, RGBA normalization and downscaling.
"""
import base64
import binascii
import io
import numbers
from pathlib import Path
from typing import Union

import cv2
import numpy as np
from loguru import logger
from PIL import Image, UnidentifiedImageError

from pixelpalette.errors import InvalidParameterError, PaletteIOError

ImageInput = Union[np.ndarray, Image.Image]


def to_rgba_array(image: ImageInput) -> np.ndarray:
    """
    Normalize an image to an H×W×4 uint8 RGBA array.

    Accepts PIL images in any mode, or numpy arrays shaped H×W (gray),
    H×W×3 (RGB) or H×W×4 (RGBA). Inputs without an alpha channel are
    treated as fully opaque. The caller's array is never modified.

    Raises:
        InvalidParameterError: If the array shape or dtype is unsupported
    """
    if isinstance(image, Image.Image):
        return np.array(image.convert("RGBA"), dtype=np.uint8)

    if not isinstance(image, np.ndarray):
        raise InvalidParameterError(f"Unsupported image type: {type(image).__name__}")

    if image.dtype != np.uint8:
        if not np.issubdtype(image.dtype, np.integer):
            raise InvalidParameterError(f"Expected 8-bit integer image, got dtype {image.dtype}")
        if image.size and (image.min() < 0 or image.max() > 255):
            raise InvalidParameterError("Image channel values must be within [0, 255]")
        image = image.astype(np.uint8)

    if image.ndim == 2:
        h, w = image.shape
        rgba = np.empty((h, w, 4), dtype=np.uint8)
        rgba[..., :3] = image[..., None]
        rgba[..., 3] = 255
        return rgba

    if image.ndim == 3 and image.shape[2] == 3:
        h, w = image.shape[:2]
        rgba = np.empty((h, w, 4), dtype=np.uint8)
        rgba[..., :3] = image
        rgba[..., 3] = 255
        return rgba

    if image.ndim == 3 and image.shape[2] == 4:
        return image.copy()

    raise InvalidParameterError(f"Unsupported image shape: {image.shape}")


def load_image(source: Union[str, Path, bytes]) -> np.ndarray:
    """
    Decode an image file (path or raw bytes) into an RGBA array using PIL.

    Raises:
        PaletteIOError: If the file cannot be read or decoded
    """
    try:
        if isinstance(source, (bytes, bytearray)):
            with Image.open(io.BytesIO(source)) as pil_image:
                return to_rgba_array(pil_image)
        with Image.open(Path(source)) as pil_image:
            return to_rgba_array(pil_image)
    except (OSError, UnidentifiedImageError) as e:
        logger.error(f"Failed to load image: {e}")
        raise PaletteIOError(f"Could not read image: {e}") from e


def decode_base64_image(b64_data: str) -> np.ndarray:
    """Decode base64 image data (optionally a data URL) to an RGBA array."""
    if ',' in b64_data:
        b64_data = b64_data.split(',', 1)[1]

    try:
        img_bytes = base64.b64decode(b64_data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidParameterError(f"Invalid base64 image data: {e}") from e

    return load_image(img_bytes)


def normalize_downscale_factor(factor: int) -> int:
    """
    Validate a downscale factor.

    Factors <= 0 fall back to 1 with a warning.

    Raises:
        InvalidParameterError: If the factor is not an integer
    """
    if not isinstance(factor, numbers.Integral) or isinstance(factor, bool):
        raise InvalidParameterError(f"Downscale factor must be an integer, got {factor!r}")
    if factor <= 0:
        logger.warning(f"Downscale factor must be >= 1, got {factor}; using 1")
        return 1
    return int(factor)


def downscale(image: np.ndarray, factor: int) -> np.ndarray:
    """
    Shrink an RGBA array by an integer factor using area interpolation.

    The new size is (width // factor, height // factor). If either side
    collapses to zero an empty H×W×4 array is returned.

    Color channels are averaged with alpha premultiplied, so transparent
    pixels do not darken their visible neighbours.
    """
    factor = normalize_downscale_factor(factor)
    if factor == 1:
        return image

    h, w = image.shape[:2]
    new_w, new_h = w // factor, h // factor
    if new_w == 0 or new_h == 0:
        logger.warning(f"Downscaling {w}x{h} by {factor} leaves no pixels")
        return np.zeros((new_h, new_w, 4), dtype=np.uint8)

    logger.debug(f"Downscaling image {w}x{h} -> {new_w}x{new_h} (factor={factor})")
    premultiplied = image.astype(np.float32)
    premultiplied[..., :3] *= premultiplied[..., 3:4] / 255.0

    small = cv2.resize(premultiplied, (new_w, new_h), interpolation=cv2.INTER_AREA)
    alpha = small[..., 3:4]
    rgb = np.zeros_like(small[..., :3])
    np.divide(small[..., :3] * 255.0, alpha, out=rgb, where=alpha > 0)

    return np.clip(np.rint(np.concatenate([rgb, alpha], axis=2)), 0, 255).astype(np.uint8)
