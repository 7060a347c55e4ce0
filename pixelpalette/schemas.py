"""
PixelPalette Option Schemas
Pydantic models for palette extraction and rendering options.
"""
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pixelpalette.config import config
from pixelpalette.errors import InvalidParameterError


class RenderOptions(BaseModel):
    """Canvas and block layout for a rendered palette."""
    model_config = ConfigDict(frozen=True)

    image_width: int = Field(
        default=config.DEFAULT_IMAGE_WIDTH,
        gt=0,
        description="Canvas width in pixels"
    )
    image_height: int = Field(
        default=config.DEFAULT_IMAGE_HEIGHT,
        gt=0,
        description="Canvas height in pixels"
    )
    color_width: int = Field(
        default=config.DEFAULT_COLOR_WIDTH,
        gt=0,
        description="Width of each color block in pixels"
    )
    color_height: int = Field(
        default=config.DEFAULT_COLOR_HEIGHT,
        gt=0,
        description="Height of each color block in pixels"
    )
    vertical: bool = Field(
        default=True,
        description="Stack blocks top to bottom instead of left to right"
    )


class PaletteOptions(RenderOptions):
    """Full option set for ``create_palette``."""

    palette_size: int = Field(
        default=config.DEFAULT_PALETTE_SIZE,
        ge=1,
        description="Number of clusters (k)"
    )
    path: Optional[Path] = Field(
        default=None,
        description="PNG output path; the raster is only returned when omitted"
    )
    downscale_factor: int = Field(
        default=config.DEFAULT_DOWNSCALE_FACTOR,
        description="Integer divisor applied to the image before sampling; values <= 0 fall back to 1"
    )
    max_iterations: int = Field(
        default=config.MAX_ITERATIONS,
        ge=1,
        description="Upper bound on k-means update steps"
    )


class PaletteColor(BaseModel):
    """Serializable palette entry."""
    hex: str = Field(
        ...,
        pattern=r"^#[0-9A-F]{6}$",
        description="Hex color code in format #RRGGBB"
    )
    rgb: List[int] = Field(
        ...,
        min_length=3,
        max_length=3,
        description="Red, green and blue channels (0-255)"
    )
    ratio: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Share of sampled pixels assigned to this color"
    )


class PaletteSummary(BaseModel):
    """Serializable summary of a clustering run."""
    palette: List[PaletteColor]
    iterations: int = Field(..., ge=0)
    converged: bool
    sampled_pixels: int = Field(..., ge=0)


def build_options(model: type, values: Dict[str, Any]) -> BaseModel:
    """Validate ``values`` into ``model``, raising InvalidParameterError on failure."""
    try:
        return model(**values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise InvalidParameterError(f"Invalid {model.__name__}: {problems}") from e
