"""
K-means clustering of sampled pixel colors.

Lloyd's algorithm in plain RGB space:

1. seed k centroids with distinct samples drawn from an injectable
   ``numpy.random.Generator``
2. assign each sample to its nearest centroid (first index wins ties)
3. replace each centroid with the integer mean of its members; a cluster
   with no members becomes black
4. stop when every centroid moved less than the convergence threshold, or
   after ``max_iterations`` updates

Assignment runs over sample chunks on a thread pool. Each chunk returns its
labels together with per-cluster channel sums and counts, and the partial
results are reduced sequentially.
"""

from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from loguru import logger

from pixelpalette.config import config
from pixelpalette.errors import InvalidParameterError
from pixelpalette.models import Color
from pixelpalette.services.reliability import CancellationToken, check_cancelled

Samples = Union[Sequence[Color], np.ndarray]


@dataclass(frozen=True)
class ClusterResult:
    """Outcome of one k-means run."""
    centroids: Tuple[Color, ...]
    labels: np.ndarray = field(repr=False, compare=False)
    counts: Tuple[int, ...]
    iterations: int
    converged: bool

    @property
    def ratios(self) -> List[float]:
        """Share of samples per cluster, in centroid order."""
        total = sum(self.counts)
        if total == 0:
            return [0.0] * len(self.counts)
        return [count / total for count in self.counts]

    @property
    def hex_codes(self) -> List[str]:
        return [c.hex for c in self.centroids]


def as_rgb_array(samples: Samples) -> np.ndarray:
    """Coerce Colors or an (N, 3|4) array to an (N, 3) int64 array."""
    if isinstance(samples, np.ndarray):
        if samples.size == 0:
            return np.zeros((0, 3), dtype=np.int64)
        if samples.ndim != 2 or samples.shape[1] not in (3, 4):
            raise InvalidParameterError(f"Expected (N, 3) or (N, 4) samples, got shape {samples.shape}")
        return samples[:, :3].astype(np.int64)

    samples = list(samples)
    if not samples:
        return np.zeros((0, 3), dtype=np.int64)
    return np.array([c.rgb for c in samples], dtype=np.int64)


def assign_to_centroids(pixels: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """
    Nearest-centroid index for every pixel.

    Squared distances are computed in exact integer arithmetic so equal
    distances compare equal, and ``argmin`` returns the lowest index.
    """
    diff = pixels[:, None, :].astype(np.int64) - centroids[None, :, :].astype(np.int64)
    d2 = np.einsum('ijk,ijk->ij', diff, diff)
    return d2.argmin(axis=1)


def _assign_chunk(pixels: np.ndarray, centroids: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    k = len(centroids)
    labels = assign_to_centroids(pixels, centroids)
    counts = np.bincount(labels, minlength=k).astype(np.int64)
    sums = np.stack(
        [np.bincount(labels, weights=pixels[:, c], minlength=k) for c in range(3)],
        axis=1,
    )
    # bincount weights are float64; channel sums stay exact well past 2**53 / 255 samples
    return labels, np.rint(sums).astype(np.int64), counts


def update_centroids(sums: np.ndarray, counts: np.ndarray) -> np.ndarray:
    """Integer mean per cluster; clusters without members become black."""
    new = np.zeros_like(sums)
    filled = counts > 0
    new[filled] = sums[filled] // counts[filled, None]
    return new


def has_converged(old: np.ndarray, new: np.ndarray, threshold: float = 1.0) -> bool:
    """True when every centroid moved strictly less than ``threshold``."""
    shift = np.sqrt(((old - new) ** 2).sum(axis=1))
    return bool(np.all(shift < threshold))


def _to_colors(centroids: np.ndarray) -> Tuple[Color, ...]:
    return tuple(Color(int(r), int(g), int(b)) for r, g, b in centroids.tolist())


class KMeansEngine:
    """
    Lloyd's k-means over RGB samples.

    Pass ``seed`` for reproducible output (each call starts from a fresh
    generator with that seed), or ``rng`` to share an existing generator.
    With neither, initial centroids come from OS entropy.
    """

    def __init__(self,
                 rng: Optional[np.random.Generator] = None,
                 seed: Optional[int] = None,
                 max_workers: Optional[int] = None,
                 chunk_size: Optional[int] = None,
                 convergence_threshold: Optional[float] = None):
        if rng is not None and seed is not None:
            raise InvalidParameterError("Pass either rng or seed, not both")

        self._seed = seed if seed is not None else (config.RANDOM_SEED if rng is None else None)
        self._rng = rng if rng is not None else np.random.default_rng()
        self.max_workers = max_workers or config.MAX_WORKERS
        self.chunk_size = chunk_size or config.KMEANS_CHUNK_SIZE
        self.convergence_threshold = (
            config.CONVERGENCE_THRESHOLD if convergence_threshold is None else convergence_threshold
        )

        if self.chunk_size <= 0:
            raise InvalidParameterError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.convergence_threshold <= 0:
            raise InvalidParameterError(
                f"convergence_threshold must be positive, got {self.convergence_threshold}"
            )

    def _generator(self) -> np.random.Generator:
        if self._seed is not None:
            return np.random.default_rng(self._seed)
        return self._rng

    def initialize_centroids(self, pixels: np.ndarray, k: int,
                             rng: Optional[np.random.Generator] = None) -> np.ndarray:
        """
        Seed centroids with the first k distinct colors of a random permutation.

        Samples are drawn uniformly without replacement, and a color already
        chosen is skipped so no two centroids start identical. When there are
        fewer distinct colors than clusters the remaining slots start black,
        so the result always has k rows.
        """
        rng = rng if rng is not None else self._generator()
        centroids = np.zeros((k, 3), dtype=np.int64)
        if len(pixels) == 0:
            return centroids

        shuffled = pixels[rng.permutation(len(pixels))]
        _, first_seen = np.unique(shuffled, axis=0, return_index=True)
        chosen = np.sort(first_seen)[:k]
        if len(chosen) < k:
            logger.warning(f"Only {len(first_seen)} distinct colors for k={k}; "
                           f"{k - len(chosen)} centroids start black")
        centroids[:len(chosen)] = shuffled[chosen]
        return centroids

    def _chunks(self, n: int) -> List[Tuple[int, int]]:
        return [(start, min(start + self.chunk_size, n)) for start in range(0, n, self.chunk_size)]

    def _assign(self, pixels: np.ndarray, centroids: np.ndarray,
                executor: Optional[Executor]) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        chunks = self._chunks(len(pixels))
        if executor is None or len(chunks) == 1:
            partials = [_assign_chunk(pixels[s:e], centroids) for s, e in chunks]
        else:
            futures = [executor.submit(_assign_chunk, pixels[s:e], centroids) for s, e in chunks]
            partials = [future.result() for future in futures]

        labels = np.concatenate([p[0] for p in partials])
        sums = np.sum([p[1] for p in partials], axis=0)
        counts = np.sum([p[2] for p in partials], axis=0)
        return labels, sums, counts

    def fit(self, samples: Samples, k: int,
            max_iterations: Optional[int] = None,
            cancel_token: Optional[CancellationToken] = None) -> ClusterResult:
        """
        Run k-means and return centroids with per-cluster statistics.

        Args:
            samples: Colors or an (N, 3|4) uint8 array
            k: Number of clusters, >= 1
            max_iterations: Upper bound on update steps, >= 1
            cancel_token: Checked at every iteration boundary

        Returns:
            ClusterResult with exactly k centroids

        Raises:
            InvalidParameterError: If k or max_iterations is below 1
            OperationCancelledError: If the token trips
        """
        max_iterations = config.MAX_ITERATIONS if max_iterations is None else max_iterations
        if not config.validate_palette_size(k):
            raise InvalidParameterError(f"k must be an integer >= 1, got {k!r}")
        if not config.validate_iterations(max_iterations):
            raise InvalidParameterError(f"max_iterations must be an integer >= 1, got {max_iterations!r}")
        k, max_iterations = int(k), int(max_iterations)

        pixels = as_rgb_array(samples)
        n = len(pixels)

        if n == 0:
            logger.warning(f"No samples to cluster; returning {k} black centroids")
            return ClusterResult(
                centroids=_to_colors(np.zeros((k, 3), dtype=np.int64)),
                labels=np.zeros(0, dtype=np.int64),
                counts=(0,) * k,
                iterations=0,
                converged=False,
            )

        logger.info(f"Starting k-means with k={k}, {n} samples, max_iterations={max_iterations}")

        workers = min(self.max_workers, len(self._chunks(n)))
        executor = ThreadPoolExecutor(max_workers=workers) if workers > 1 else None
        try:
            centroids = self.initialize_centroids(pixels, k)
            labels, sums, counts = self._assign(pixels, centroids, executor)

            for iteration in range(1, max_iterations + 1):
                check_cancelled(cancel_token, "k-means clustering")
                new_centroids = update_centroids(sums, counts)

                if has_converged(centroids, new_centroids, self.convergence_threshold):
                    logger.info(f"k-means converged after {iteration} iterations")
                    return ClusterResult(
                        centroids=_to_colors(new_centroids),
                        labels=labels,
                        counts=tuple(int(c) for c in counts),
                        iterations=iteration,
                        converged=True,
                    )

                centroids = new_centroids
                labels, sums, counts = self._assign(pixels, centroids, executor)
        finally:
            if executor is not None:
                executor.shutdown(wait=True)

        logger.warning(f"k-means hit max_iterations={max_iterations} without converging")
        return ClusterResult(
            centroids=_to_colors(centroids),
            labels=labels,
            counts=tuple(int(c) for c in counts),
            iterations=max_iterations,
            converged=False,
        )

    def cluster(self, samples: Samples, k: int,
                max_iterations: Optional[int] = None,
                cancel_token: Optional[CancellationToken] = None) -> List[Color]:
        """Return exactly k centroid colors in cluster-index order."""
        return list(self.fit(samples, k, max_iterations, cancel_token).centroids)


def cluster_colors(samples: Samples, k: int,
                   max_iterations: Optional[int] = None,
                   seed: Optional[int] = None) -> List[Color]:
    """Convenience wrapper around ``KMeansEngine(seed=seed).cluster``."""
    return KMeansEngine(seed=seed).cluster(samples, k, max_iterations)
