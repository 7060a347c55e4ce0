"""
PixelPalette

Dominant color extraction and palette rendering for raster images.
Pixels are sampled in parallel, clustered with k-means in RGB space and
rendered as labeled color blocks.
"""

from pixelpalette.errors import InvalidParameterError, OperationCancelledError, PaletteIOError, PixelPaletteError
from pixelpalette.models import Color, PaletteModel
from pixelpalette.schemas import PaletteOptions, RenderOptions
from pixelpalette.services.colors.kmeans import ClusterResult, KMeansEngine
from pixelpalette.services.colors.palette import PixelPalette, create_palette, dominant_colors
from pixelpalette.services.colors.sampling import extract_colors
from pixelpalette.services.colors.swatches import PaletteRenderer
from pixelpalette.services.reliability import CancellationToken

__version__ = "1.0.0"

__all__ = [
    'CancellationToken',
    'ClusterResult',
    'Color',
    'InvalidParameterError',
    'KMeansEngine',
    'OperationCancelledError',
    'PaletteIOError',
    'PaletteModel',
    'PaletteOptions',
    'PaletteRenderer',
    'PixelPalette',
    'PixelPaletteError',
    'RenderOptions',
    'create_palette',
    'dominant_colors',
    'extract_colors',
]
