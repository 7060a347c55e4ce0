"""
Unit tests for metrics collection and the palette run logger.
"""

import pytest

from pixelpalette.services.observability import (
    MetricsCollector, PaletteRunLogger, PerformanceMetrics, get_metrics_collector,
    log_memory_usage, performance_monitor, performance_tracked
)


def make_metrics(name, duration, error=None):
    return PerformanceMetrics(
        operation_name=name, duration_ms=duration, memory_usage_mb=10.0, cpu_percent=5.0,
        pixel_count=100, cluster_count=3, timestamp=0.0, error=error
    )


class TestMetricsCollector:
    """Test aggregation of performance metrics"""

    def test_operation_stats(self):
        """Durations are aggregated per operation"""
        collector = MetricsCollector()
        for duration in (10.0, 20.0, 30.0):
            collector.record_performance(make_metrics("clustering", duration))
        collector.record_performance(make_metrics("clustering", 40.0, error="boom"))

        stats = collector.get_operation_stats("clustering")
        assert stats['total_calls'] == 4
        assert stats['error_count'] == 1
        assert stats['error_rate'] == pytest.approx(0.25)
        assert stats['duration_stats']['mean_ms'] == pytest.approx(25.0)
        assert stats['duration_stats']['max_ms'] == pytest.approx(40.0)

    def test_unknown_operation(self):
        """Unknown operations have no stats"""
        assert MetricsCollector().get_operation_stats("nope") == {}

    def test_all_stats_and_recent(self):
        """Totals span every operation; history is bounded"""
        collector = MetricsCollector(max_history=2)
        collector.record_performance(make_metrics("a", 1.0))
        collector.record_performance(make_metrics("b", 2.0))
        collector.record_performance(make_metrics("b", 3.0))

        stats = collector.get_all_stats()
        assert stats['total_operations'] == 3
        assert set(stats['operations']) == {"a", "b"}
        recent = collector.get_recent_metrics(limit=10)
        assert [m['duration_ms'] for m in recent] == [2.0, 3.0]

    def test_reset(self):
        """reset() clears everything"""
        collector = MetricsCollector()
        collector.record_performance(make_metrics("a", 1.0))
        collector.reset()
        assert collector.get_all_stats()['total_operations'] == 0


class TestPerformanceMonitor:
    """Test the context manager and decorator"""

    def test_records_success(self):
        """Completed operations are recorded without error"""
        with performance_monitor("sampling", pixel_count=64, cluster_count=2):
            pass
        recent = get_metrics_collector().get_recent_metrics()
        assert recent[-1]['operation_name'] == "sampling"
        assert recent[-1]['pixel_count'] == 64
        assert recent[-1]['error'] is None

    def test_records_and_reraises_errors(self):
        """Failures are recorded and propagated"""
        with pytest.raises(RuntimeError):
            with performance_monitor("rendering"):
                raise RuntimeError("disk full")
        stats = get_metrics_collector().get_operation_stats("rendering")
        assert stats['error_count'] == 1

    def test_decorator(self):
        """performance_tracked records the wrapped call"""
        @performance_tracked("tracked_op")
        def work(x):
            return x * 2

        assert work(21) == 42
        assert get_metrics_collector().get_operation_stats("tracked_op")['total_calls'] == 1

    def test_log_memory_usage(self):
        """Memory snapshot includes the stage name"""
        snapshot = log_memory_usage("unit")
        assert snapshot['stage'] == "unit"
        assert snapshot['memory_mb'] > 0


class TestPaletteRunLogger:
    """Test per-run stage logging"""

    def test_run_summary(self):
        """Stage timings and clustering stats end up in the summary"""
        run_logger = PaletteRunLogger()
        run_id = run_logger.start_run((20, 30), 4)
        run_logger.log_stage(run_id, "sampling", 1.5, pixel_count=600)
        run_logger.log_stage(run_id, "clustering", 2.5, iterations=7, converged=True)
        run_logger.log_warning(run_id, "something odd")

        metrics = run_logger.finish_run(run_id)
        assert metrics.run_id == run_id
        assert metrics.input_image_size == (20, 30)
        assert metrics.sampled_pixel_count == 600
        assert metrics.iterations == 7
        assert metrics.converged
        assert metrics.sampling_duration_ms == 1.5
        assert metrics.rendering_duration_ms == 0.0
        assert metrics.warnings == ["something odd"]

    def test_run_ids_are_unique(self):
        """Each run gets its own id"""
        run_logger = PaletteRunLogger()
        assert run_logger.start_run((1, 1), 1) != run_logger.start_run((1, 1), 1)

    def test_finish_unknown_run(self):
        """Finishing an unknown run raises"""
        with pytest.raises(ValueError):
            PaletteRunLogger().finish_run("palette_run_999")
