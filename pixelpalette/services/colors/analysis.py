"""
Per-channel color histograms.

``channel_histogram_parallel`` splits the image into horizontal chunks, counts
each chunk on a thread pool and sums the partial histograms after every
chunk has finished.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from loguru import logger

from pixelpalette.config import config
from pixelpalette.errors import InvalidParameterError
from pixelpalette.services.imaging import ImageInput, to_rgba_array
from pixelpalette.services.reliability import CancellationToken, check_cancelled

BINS = 256


@dataclass(frozen=True)
class ColorHistogram:
    """Frequency of each 0..255 value for the red, green and blue channels."""
    red: np.ndarray
    green: np.ndarray
    blue: np.ndarray

    @property
    def total(self) -> int:
        return int(self.red.sum())

    def peak(self) -> Tuple[int, int, int]:
        """Most frequent value per channel (lowest value wins ties)."""
        return int(self.red.argmax()), int(self.green.argmax()), int(self.blue.argmax())


def _count_rows(rgba: np.ndarray) -> np.ndarray:
    pixels = rgba.reshape(-1, 4)
    return np.stack([np.bincount(pixels[:, c], minlength=BINS) for c in range(3)]).astype(np.int64)


def _count_chunk(rgba: np.ndarray, start_row: int, end_row: int,
                 cancel_token: Optional[CancellationToken]) -> np.ndarray:
    check_cancelled(cancel_token, "histogram")
    return _count_rows(rgba[start_row:end_row])


def _to_histogram(counts: np.ndarray) -> ColorHistogram:
    return ColorHistogram(red=counts[0], green=counts[1], blue=counts[2])


def channel_histogram(image: ImageInput) -> ColorHistogram:
    """Histogram over every pixel, regardless of alpha."""
    return _to_histogram(_count_rows(to_rgba_array(image)))


def channel_histogram_parallel(image: ImageInput, chunks: int,
                               max_workers: Optional[int] = None,
                               cancel_token: Optional[CancellationToken] = None) -> ColorHistogram:
    """
    Histogram computed over ``chunks`` row bands in parallel.

    The last chunk absorbs the remainder rows.

    Raises:
        InvalidParameterError: If chunks < 1 or chunks exceeds the row count
        OperationCancelledError: If the token trips before a chunk starts
    """
    rgba = to_rgba_array(image)
    rows = rgba.shape[0]
    if chunks < 1 or chunks > rows:
        raise InvalidParameterError(f"chunks must be within [1, {rows}], got {chunks}")

    chunk_rows = rows // chunks
    bounds = [
        (i * chunk_rows, rows if i == chunks - 1 else (i + 1) * chunk_rows)
        for i in range(chunks)
    ]
    workers = max(1, min(max_workers or config.MAX_WORKERS, chunks))

    logger.debug(f"Counting histogram over {chunks} chunks on {workers} workers")

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(_count_chunk, rgba, start, end, cancel_token) for start, end in bounds]
        partials = [future.result() for future in futures]

    return _to_histogram(np.sum(partials, axis=0))
