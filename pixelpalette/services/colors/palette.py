"""
PixelPalette pipeline.

Orchestrates the stages of a palette run with performance monitoring:
optional downscale → pixel sampling → k-means clustering → block rendering
→ optional PNG persistence.
"""

import time
from typing import Any, List, Optional

import numpy as np

from pixelpalette.config import config
from pixelpalette.errors import InvalidParameterError
from pixelpalette.models import Color, PaletteModel
from pixelpalette.schemas import PaletteColor, PaletteOptions, PaletteSummary, build_options
from pixelpalette.utils.logging import get_logger
from pixelpalette.services.imaging import ImageInput, downscale, normalize_downscale_factor, to_rgba_array
from pixelpalette.services.observability import get_run_logger, log_memory_usage, performance_monitor
from pixelpalette.services.reliability import CancellationToken
from pixelpalette.services.colors.kmeans import ClusterResult, KMeansEngine
from pixelpalette.services.colors.sampling import extract_pixels
from pixelpalette.services.colors.swatches import PaletteRenderer


def summarize(result: ClusterResult, sampled_pixels: int) -> PaletteSummary:
    """Serializable view of a clustering run."""
    return PaletteSummary(
        palette=[
            PaletteColor(hex=c.hex, rgb=list(c.rgb), ratio=ratio)
            for c, ratio in zip(result.centroids, result.ratios)
        ],
        iterations=result.iterations,
        converged=result.converged,
        sampled_pixels=sampled_pixels,
    )


class PixelPalette:
    """Facade over the sampler, the k-means engine and the renderer."""

    def __init__(self,
                 engine: Optional[KMeansEngine] = None,
                 renderer: Optional[PaletteRenderer] = None,
                 alpha_threshold: Optional[int] = None,
                 sampler_workers: Optional[int] = None,
                 strip_rows: Optional[int] = None):
        self.engine = engine or KMeansEngine()
        self.renderer = renderer or PaletteRenderer()
        self.alpha_threshold = config.ALPHA_THRESHOLD if alpha_threshold is None else alpha_threshold
        self.sampler_workers = sampler_workers
        self.strip_rows = strip_rows

    def _run_clustering(self, run_id: str, rgba: np.ndarray, k: int, downscale_factor: int,
                        max_iterations: Optional[int],
                        cancel_token: Optional[CancellationToken]) -> ClusterResult:
        run_logger = get_run_logger()

        factor = normalize_downscale_factor(downscale_factor)
        if downscale_factor <= 0:
            run_logger.log_warning(run_id, f"Downscale factor {downscale_factor} replaced with 1")
        if factor > 1:
            with performance_monitor("downscale", pixel_count=rgba.shape[0] * rgba.shape[1]):
                rgba = downscale(rgba, factor)

        with performance_monitor("pixel_sampling", pixel_count=rgba.shape[0] * rgba.shape[1]):
            start_time = time.time()
            pixels = extract_pixels(
                rgba,
                alpha_threshold=self.alpha_threshold,
                max_workers=self.sampler_workers,
                strip_rows=self.strip_rows,
                cancel_token=cancel_token,
            )
            run_logger.log_stage(run_id, "sampling", (time.time() - start_time) * 1000,
                                 pixel_count=len(pixels))
            log_memory_usage("pixel_sampling_complete")

        if len(pixels) == 0:
            run_logger.log_warning(run_id, "No visible pixels to cluster")

        with performance_monitor("color_clustering", pixel_count=len(pixels), cluster_count=k):
            start_time = time.time()
            result = self.engine.fit(pixels, k, max_iterations, cancel_token)
            run_logger.log_stage(run_id, "clustering", (time.time() - start_time) * 1000,
                                 cluster_count=k,
                                 iterations=result.iterations,
                                 converged=result.converged)
            log_memory_usage("clustering_complete")

        return result

    def cluster_image(self, image: ImageInput, k: int,
                      downscale_factor: int = 1,
                      max_iterations: Optional[int] = None,
                      cancel_token: Optional[CancellationToken] = None) -> ClusterResult:
        """
        Sample and cluster an image, returning centroids with cluster statistics.

        Raises:
            InvalidParameterError: If k < 1, the downscale factor is not an
                integer, or the image is malformed
            OperationCancelledError: If the token trips
        """
        if not config.validate_palette_size(k):
            raise InvalidParameterError(f"k must be an integer >= 1, got {k!r}")

        rgba = to_rgba_array(image)
        run_logger = get_run_logger()
        run_id = run_logger.start_run(rgba.shape[:2], k)
        try:
            return self._run_clustering(run_id, rgba, k, downscale_factor, max_iterations, cancel_token)
        except Exception as e:
            run_logger.log_warning(run_id, f"Palette run failed: {e}")
            raise
        finally:
            run_logger.finish_run(run_id)

    def dominant_colors(self, image: ImageInput, k: int,
                        downscale_factor: int = 1,
                        max_iterations: Optional[int] = None,
                        cancel_token: Optional[CancellationToken] = None) -> List[Color]:
        """Return exactly k dominant colors in cluster-index order."""
        return list(self.cluster_image(image, k, downscale_factor, max_iterations, cancel_token).centroids)

    def create_palette(self, image: ImageInput,
                       options: Optional[PaletteOptions] = None,
                       cancel_token: Optional[CancellationToken] = None,
                       **overrides: Any) -> PaletteModel:
        """
        Extract ``palette_size`` colors and render them as a palette image.

        Args:
            image: Source image (PIL image or uint8 array)
            options: PaletteOptions; keyword overrides are merged on top
            cancel_token: Checked between strips and iterations

        Returns:
            PaletteModel with every computed color and the rendered canvas

        Raises:
            InvalidParameterError: For invalid options
            PaletteIOError: If ``path`` is set and the PNG cannot be written
            OperationCancelledError: If the token trips
        """
        if options is None:
            options = build_options(PaletteOptions, overrides)
        elif overrides:
            options = build_options(PaletteOptions, {**options.model_dump(), **overrides})

        rgba = to_rgba_array(image)
        run_logger = get_run_logger()
        run_id = run_logger.start_run(rgba.shape[:2], options.palette_size)
        try:
            result = self._run_clustering(run_id, rgba, options.palette_size,
                                          options.downscale_factor, options.max_iterations,
                                          cancel_token)

            with performance_monitor("palette_rendering", cluster_count=options.palette_size):
                start_time = time.time()
                rendered = self.renderer.render(
                    result.centroids,
                    options.color_width, options.color_height,
                    options.image_width, options.image_height,
                    vertical=options.vertical,
                )
                saved_path = None
                if options.path is not None:
                    saved_path = self.renderer.save(rendered.image, options.path)
                run_logger.log_stage(run_id, "rendering", (time.time() - start_time) * 1000,
                                     blocks_drawn=rendered.drawn)
        except Exception as e:
            run_logger.log_warning(run_id, f"Palette run failed: {e}")
            raise
        finally:
            run_logger.finish_run(run_id)

        get_logger().info("Palette created", extra={
            "hex_codes": [c.hex for c in rendered.palette],
            "blocks_drawn": rendered.drawn,
            "path": str(saved_path) if saved_path else None,
        })
        return PaletteModel(palette=rendered.palette, image=rendered.image, path=saved_path)


# Default facade shared by the module-level helpers
_pixel_palette: Optional[PixelPalette] = None


def get_pixel_palette() -> PixelPalette:
    """Get or create the default PixelPalette instance."""
    global _pixel_palette
    if _pixel_palette is None:
        _pixel_palette = PixelPalette()
    return _pixel_palette


def dominant_colors(image: ImageInput, k: int, downscale_factor: int = 1,
                    max_iterations: Optional[int] = None) -> List[Color]:
    """Dominant colors using the default PixelPalette."""
    return get_pixel_palette().dominant_colors(image, k, downscale_factor, max_iterations)


def create_palette(image: ImageInput, options: Optional[PaletteOptions] = None,
                   **overrides: Any) -> PaletteModel:
    """Palette image using the default PixelPalette."""
    return get_pixel_palette().create_palette(image, options, **overrides)
