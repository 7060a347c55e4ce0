"""
Unit tests for the k-means clustering engine.

Covers the clustering guarantees:
- k=1 yields the truncated mean
- exactly k centroids for every input
- reproducibility under a fixed seed
- nearest-centroid assignment, first index winning ties
- empty-cluster and empty-input policies
"""

import numpy as np
import pytest

from pixelpalette.errors import InvalidParameterError, OperationCancelledError
from pixelpalette.models import BLACK, Color
from pixelpalette.services.colors.kmeans import (
    ClusterResult, KMeansEngine, as_rgb_array, assign_to_centroids,
    cluster_colors, has_converged, update_centroids
)
from pixelpalette.services.reliability import CancellationToken


def random_samples(n, seed=0):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(n, 3), dtype=np.uint8)


class TestAssignment:
    """Test nearest-centroid assignment"""

    def test_matches_brute_force(self):
        """No sample is closer to another centroid than to its own"""
        pixels = random_samples(500, seed=1).astype(np.int64)
        centroids = random_samples(6, seed=2).astype(np.int64)
        labels = assign_to_centroids(pixels, centroids)

        for pixel, label in zip(pixels, labels):
            distances = [int(((pixel - c) ** 2).sum()) for c in centroids]
            assert distances[label] == min(distances)

    def test_first_index_wins_ties(self):
        """Equidistant samples go to the lowest centroid index"""
        centroids = np.array([[0, 0, 0], [20, 0, 0], [10, 0, 0]], dtype=np.int64)
        pixels = np.array([[10, 0, 0], [5, 0, 0], [15, 0, 0]], dtype=np.int64)
        assert assign_to_centroids(pixels, centroids).tolist() == [2, 0, 1]

        duplicate = np.array([[7, 7, 7], [7, 7, 7]], dtype=np.int64)
        assert assign_to_centroids(np.array([[1, 2, 3]]), duplicate).tolist() == [0]


class TestUpdate:
    """Test centroid update and convergence helpers"""

    def test_integer_mean_truncates(self):
        """Mean uses floor division of non-negative sums"""
        sums = np.array([[5, 7, 9]], dtype=np.int64)
        counts = np.array([2], dtype=np.int64)
        assert update_centroids(sums, counts).tolist() == [[2, 3, 4]]

    def test_empty_cluster_is_black(self):
        """Clusters without members become (0, 0, 0)"""
        sums = np.array([[10, 10, 10], [0, 0, 0]], dtype=np.int64)
        counts = np.array([2, 0], dtype=np.int64)
        assert update_centroids(sums, counts).tolist() == [[5, 5, 5], [0, 0, 0]]

    def test_convergence_is_strict(self):
        """Every centroid must move strictly less than the threshold"""
        old = np.array([[0, 0, 0], [10, 10, 10]])
        assert has_converged(old, old.copy())
        assert not has_converged(old, np.array([[1, 0, 0], [10, 10, 10]]))


class TestKMeansEngine:
    """Test full clustering runs"""

    def test_k1_is_truncated_mean(self, seeded_engine):
        """A single cluster converges to the integer mean of every sample"""
        samples = random_samples(101, seed=3)
        expected = samples.astype(np.int64).sum(axis=0) // len(samples)

        result = seeded_engine.fit(samples, 1)
        assert result.converged
        assert result.centroids[0].rgb == tuple(int(v) for v in expected)
        assert result.counts == (101,)

    @pytest.mark.parametrize("k", [1, 2, 5, 17])
    def test_always_k_centroids(self, seeded_engine, k):
        """Result length is k whether or not the run converged"""
        samples = random_samples(200, seed=k)
        assert len(seeded_engine.cluster(samples, k)) == k
        assert len(seeded_engine.cluster(samples, k, max_iterations=1)) == k

    def test_iteration_cap(self, seeded_engine):
        """Hitting max_iterations reports non-convergence"""
        samples = random_samples(2000, seed=4)
        result = seeded_engine.fit(samples, 8, max_iterations=1)
        assert result.iterations == 1
        assert len(result.centroids) == 8

    def test_seeded_runs_are_identical(self):
        """Same seed and input produce the same palette"""
        samples = random_samples(1000, seed=5)
        first = KMeansEngine(seed=7).fit(samples, 4)
        second = KMeansEngine(seed=7).fit(samples, 4)
        assert first.centroids == second.centroids
        assert first.iterations == second.iterations

        engine = KMeansEngine(seed=7)
        assert engine.cluster(samples, 4) == engine.cluster(samples, 4)

    def test_injected_generator(self):
        """An explicit Generator drives initialization"""
        samples = random_samples(300, seed=6)
        a = KMeansEngine(rng=np.random.default_rng(11)).cluster(samples, 3)
        b = KMeansEngine(rng=np.random.default_rng(11)).cluster(samples, 3)
        assert a == b

    def test_rng_and_seed_are_exclusive(self):
        """Passing both rng and seed is rejected"""
        with pytest.raises(InvalidParameterError):
            KMeansEngine(rng=np.random.default_rng(1), seed=1)

    def test_parallel_matches_single_chunk(self):
        """Chunked parallel assignment gives the same result as one chunk"""
        samples = random_samples(5000, seed=8)
        single = KMeansEngine(seed=3, max_workers=1, chunk_size=10_000).fit(samples, 5)
        parallel = KMeansEngine(seed=3, max_workers=4, chunk_size=333).fit(samples, 5)
        assert single.centroids == parallel.centroids
        assert single.counts == parallel.counts
        np.testing.assert_array_equal(single.labels, parallel.labels)

    def test_final_assignment_is_nearest(self, seeded_engine):
        """On convergence the labels are nearest-centroid for the returned centroids"""
        samples = random_samples(400, seed=9)
        result = seeded_engine.fit(samples, 4, max_iterations=500)
        assert result.converged
        centroids = np.array([c.rgb for c in result.centroids], dtype=np.int64)
        np.testing.assert_array_equal(result.labels, assign_to_centroids(samples.astype(np.int64), centroids))
        assert sum(result.counts) == 400

    def test_red_green_scenario(self):
        """Two red and two green pixels split into red and green"""
        samples = [Color(255, 0, 0), Color(255, 0, 0), Color(0, 255, 0), Color(0, 255, 0)]
        for seed in range(10):
            result = KMeansEngine(seed=seed).fit(samples, 2)
            assert set(result.centroids) == {Color(255, 0, 0), Color(0, 255, 0)}
            assert result.converged

    def test_empty_samples_give_black(self, seeded_engine):
        """Empty input returns k black centroids without raising"""
        result = seeded_engine.fit([], 3)
        assert result.centroids == (BLACK, BLACK, BLACK)
        assert result.iterations == 0
        assert not result.converged
        assert result.ratios == [0.0, 0.0, 0.0]

    def test_fewer_distinct_colors_than_k(self, seeded_engine):
        """Missing clusters are padded with black"""
        samples = [Color(200, 10, 10), Color(10, 200, 10), Color(200, 10, 10)]
        result = seeded_engine.fit(samples, 4)
        assert len(result.centroids) == 4
        assert set(result.centroids[:2]) == {Color(200, 10, 10), Color(10, 200, 10)}
        assert result.centroids[2:] == (BLACK, BLACK)
        assert result.counts[2:] == (0, 0)

    def test_ratios(self, seeded_engine):
        """Ratios are the share of samples per cluster"""
        samples = [Color(0, 0, 255)] * 3 + [Color(255, 255, 0)]
        result = seeded_engine.fit(samples, 2)
        ratios = dict(zip(result.hex_codes, result.ratios))
        assert ratios == {"#0000FF": 0.75, "#FFFF00": 0.25}

    def test_rgba_array_input(self, seeded_engine):
        """(N, 4) arrays are accepted and alpha is ignored"""
        samples = np.array([[10, 20, 30, 255], [10, 20, 30, 129]], dtype=np.uint8)
        assert seeded_engine.cluster(samples, 1) == [Color(10, 20, 30)]

    @pytest.mark.parametrize("k", [0, -1, 1.5, True])
    def test_invalid_k(self, seeded_engine, k):
        """k must be an integer >= 1"""
        with pytest.raises(InvalidParameterError):
            seeded_engine.fit(random_samples(10), k)

    def test_invalid_max_iterations(self, seeded_engine):
        """max_iterations must be >= 1"""
        with pytest.raises(InvalidParameterError):
            seeded_engine.fit(random_samples(10), 2, max_iterations=0)

    def test_invalid_sample_shape(self):
        """Samples must be (N, 3) or (N, 4)"""
        with pytest.raises(InvalidParameterError):
            as_rgb_array(np.zeros((4, 2), dtype=np.uint8))

    def test_cancellation(self, seeded_engine):
        """A tripped token stops the iteration loop"""
        token = CancellationToken()
        token.cancel("test")
        with pytest.raises(OperationCancelledError):
            seeded_engine.fit(random_samples(50), 3, cancel_token=token)

    def test_cluster_colors_helper(self):
        """Module helper returns Colors"""
        colors = cluster_colors(random_samples(30), 2, seed=1)
        assert len(colors) == 2
        assert all(isinstance(c, Color) for c in colors)

    def test_result_is_frozen(self, seeded_engine):
        """ClusterResult cannot be modified"""
        result = seeded_engine.fit(random_samples(20), 2)
        assert isinstance(result, ClusterResult)
        with pytest.raises(Exception):
            result.iterations = 99
