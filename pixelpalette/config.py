"""
PixelPalette Configuration
Manages environment variables and defaults for sampling, clustering and rendering.
"""
import numbers
import os
from typing import Optional


def _default_workers() -> int:
    return min(8, (os.cpu_count() or 1))


class Config:
    """Configuration class for PixelPalette services."""

    # Pixel sampling
    ALPHA_THRESHOLD: int = int(os.environ.get("PIXELPALETTE_ALPHA_THRESHOLD", "128"))
    SAMPLER_STRIP_ROWS: int = int(os.environ.get("PIXELPALETTE_SAMPLER_STRIP_ROWS", "64"))

    # Clustering
    MAX_ITERATIONS: int = int(os.environ.get("PIXELPALETTE_MAX_ITERATIONS", "100"))
    CONVERGENCE_THRESHOLD: float = float(os.environ.get("PIXELPALETTE_CONVERGENCE_THRESHOLD", "1.0"))
    KMEANS_CHUNK_SIZE: int = int(os.environ.get("PIXELPALETTE_KMEANS_CHUNK_SIZE", "16384"))
    RANDOM_SEED: Optional[int] = (
        int(os.environ["PIXELPALETTE_RANDOM_SEED"]) if os.environ.get("PIXELPALETTE_RANDOM_SEED") else None
    )

    # Worker pool
    MAX_WORKERS: int = int(os.environ.get("PIXELPALETTE_MAX_WORKERS", str(_default_workers())))

    # Palette rendering defaults
    DEFAULT_PALETTE_SIZE: int = int(os.environ.get("PIXELPALETTE_DEFAULT_PALETTE_SIZE", "5"))
    DEFAULT_IMAGE_WIDTH: int = int(os.environ.get("PIXELPALETTE_IMAGE_WIDTH", "600"))
    DEFAULT_IMAGE_HEIGHT: int = int(os.environ.get("PIXELPALETTE_IMAGE_HEIGHT", "800"))
    DEFAULT_COLOR_WIDTH: int = int(os.environ.get("PIXELPALETTE_COLOR_WIDTH", "600"))
    DEFAULT_COLOR_HEIGHT: int = int(os.environ.get("PIXELPALETTE_COLOR_HEIGHT", "100"))
    DEFAULT_DOWNSCALE_FACTOR: int = int(os.environ.get("PIXELPALETTE_DOWNSCALE_FACTOR", "1"))
    LABEL_FONT_SCALE: float = float(os.environ.get("PIXELPALETTE_LABEL_FONT_SCALE", "0.4"))

    # Logging and metrics
    LOG_LEVEL: str = os.environ.get("PIXELPALETTE_LOG_LEVEL", "INFO")
    METRICS_ENABLED: bool = bool(int(os.environ.get("PIXELPALETTE_METRICS_ENABLED", "1")))

    @classmethod
    def validate_palette_size(cls, k: int) -> bool:
        """Validate number of palette colors."""
        return isinstance(k, numbers.Integral) and not isinstance(k, bool) and k >= 1

    @classmethod
    def validate_iterations(cls, iterations: int) -> bool:
        """Validate k-means iteration cap."""
        return isinstance(iterations, numbers.Integral) and not isinstance(iterations, bool) and iterations >= 1

    @classmethod
    def validate_dimension(cls, value: int) -> bool:
        """Validate a canvas or block dimension."""
        return isinstance(value, numbers.Integral) and not isinstance(value, bool) and value > 0

    @classmethod
    def validate_alpha_threshold(cls, threshold: int) -> bool:
        """Validate alpha visibility threshold."""
        return 0 <= threshold <= 255


# Global config instance
config = Config()
