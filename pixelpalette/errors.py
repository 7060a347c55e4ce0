"""
PixelPalette error types.

Every failure the pipeline reports to its caller derives from PixelPaletteError.
"""


class PixelPaletteError(Exception):
    """Base exception for PixelPalette."""
    pass


class InvalidParameterError(PixelPaletteError, ValueError):
    """Raised when a caller passes an out-of-range or malformed argument."""
    pass


class PaletteIOError(PixelPaletteError, OSError):
    """Raised when an image cannot be read or a palette cannot be written."""
    pass


class OperationCancelledError(PixelPaletteError):
    """Raised when a cancellation token trips during sampling or clustering."""
    pass
