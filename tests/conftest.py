"""
Test configuration and fixtures for PixelPalette tests.
"""
import numpy as np
import pytest

from pixelpalette.services.colors.kmeans import KMeansEngine
from pixelpalette.services.observability import reset_metrics as _reset_metrics


@pytest.fixture(autouse=True)
def reset_metrics():
    """Reset metrics before each test."""
    _reset_metrics()


@pytest.fixture
def two_color_image():
    """20x20 opaque RGBA image: left half red, right half blue."""
    img = np.zeros((20, 20, 4), dtype=np.uint8)
    img[:, :10] = (255, 0, 0, 255)
    img[:, 10:] = (0, 0, 255, 255)
    return img


@pytest.fixture
def transparent_image():
    """Fully transparent 16x16 RGBA image."""
    return np.zeros((16, 16, 4), dtype=np.uint8)


@pytest.fixture
def gradient_image():
    """64x48 RGB image with smooth horizontal and vertical gradients."""
    h, w = 48, 64
    img = np.zeros((h, w, 3), dtype=np.uint8)
    img[..., 0] = np.linspace(0, 255, w, dtype=np.uint8)[None, :]
    img[..., 1] = np.linspace(0, 255, h, dtype=np.uint8)[:, None]
    img[..., 2] = 128
    return img


@pytest.fixture
def seeded_engine():
    """Deterministic engine that splits work into several small chunks."""
    return KMeansEngine(seed=42, max_workers=4, chunk_size=7)
