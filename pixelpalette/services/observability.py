"""
Observability metrics collection for the PixelPalette pipeline.

Provides performance monitoring, a thread-safe metrics collector and a
per-run logger that records stage timings for sampling, clustering and
rendering.
"""

import time
import psutil
from typing import Dict, Any, Optional, List
from functools import wraps
from dataclasses import dataclass, asdict, field
from contextlib import contextmanager
import threading
from collections import defaultdict, deque
import numpy as np
from loguru import logger

from pixelpalette.config import config


@dataclass
class PerformanceMetrics:
    """Performance metrics for a single pipeline operation."""
    operation_name: str
    duration_ms: float
    memory_usage_mb: float
    cpu_percent: float
    pixel_count: int
    cluster_count: int
    timestamp: float
    error: Optional[str] = None


@dataclass
class PaletteRunMetrics:
    """Summary of one dominant-color or palette run."""
    run_id: str
    total_duration_ms: float
    sampling_duration_ms: float
    clustering_duration_ms: float
    rendering_duration_ms: float

    input_image_size: tuple
    sampled_pixel_count: int

    cluster_count: int
    iterations: int
    converged: bool

    warnings: List[str] = field(default_factory=list)


class MetricsCollector:
    """Thread-safe metrics collector for pipeline operations."""

    def __init__(self, max_history: int = 1000):
        self.max_history = max_history
        self._lock = threading.Lock()
        self._metrics_history: deque = deque(maxlen=max_history)
        self._operation_counts = defaultdict(int)
        self._error_counts = defaultdict(int)
        self._performance_stats = defaultdict(list)

    def record_performance(self, metrics: PerformanceMetrics) -> None:
        """Record performance metrics for an operation."""
        with self._lock:
            self._metrics_history.append(metrics)
            self._operation_counts[metrics.operation_name] += 1

            if metrics.error:
                self._error_counts[metrics.operation_name] += 1

            self._performance_stats[metrics.operation_name].append({
                'duration_ms': metrics.duration_ms,
                'memory_mb': metrics.memory_usage_mb,
                'cpu_percent': metrics.cpu_percent
            })

            # Keep only recent stats to prevent memory growth
            if len(self._performance_stats[metrics.operation_name]) > 100:
                self._performance_stats[metrics.operation_name].pop(0)

    def _operation_stats_locked(self, operation_name: str) -> Dict[str, Any]:
        stats = self._performance_stats.get(operation_name)
        if not stats:
            return {}

        durations = [s['duration_ms'] for s in stats]
        memory_usage = [s['memory_mb'] for s in stats]
        cpu_usage = [s['cpu_percent'] for s in stats]

        return {
            'operation_name': operation_name,
            'total_calls': self._operation_counts[operation_name],
            'error_count': self._error_counts[operation_name],
            'error_rate': self._error_counts[operation_name] / max(1, self._operation_counts[operation_name]),
            'duration_stats': {
                'mean_ms': float(np.mean(durations)),
                'median_ms': float(np.median(durations)),
                'p95_ms': float(np.percentile(durations, 95)),
                'p99_ms': float(np.percentile(durations, 99)),
                'min_ms': float(np.min(durations)),
                'max_ms': float(np.max(durations))
            },
            'memory_stats': {
                'mean_mb': float(np.mean(memory_usage)),
                'peak_mb': float(np.max(memory_usage))
            },
            'cpu_stats': {
                'mean_percent': float(np.mean(cpu_usage)),
                'peak_percent': float(np.max(cpu_usage))
            }
        }

    def get_operation_stats(self, operation_name: str) -> Dict[str, Any]:
        """Get aggregated statistics for a specific operation."""
        with self._lock:
            return self._operation_stats_locked(operation_name)

    def get_all_stats(self) -> Dict[str, Any]:
        """Get aggregated statistics for all operations."""
        with self._lock:
            all_stats = {
                name: self._operation_stats_locked(name)
                for name in self._operation_counts.keys()
            }
            total_ops = sum(self._operation_counts.values())
            total_errors = sum(self._error_counts.values())

            return {
                'operations': all_stats,
                'total_operations': total_ops,
                'total_errors': total_errors,
                'overall_error_rate': total_errors / max(1, total_ops)
            }

    def get_recent_metrics(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Get the most recent performance metrics."""
        with self._lock:
            recent = list(self._metrics_history)[-limit:]
            return [asdict(metric) for metric in recent]

    def reset(self) -> None:
        with self._lock:
            self._metrics_history.clear()
            self._operation_counts.clear()
            self._error_counts.clear()
            self._performance_stats.clear()


# Global metrics collector instance
_metrics_collector = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    """Get the global metrics collector instance."""
    return _metrics_collector


def reset_metrics() -> None:
    """Clear the global metrics collector."""
    _metrics_collector.reset()


def _rss_mb() -> float:
    return psutil.Process().memory_info().rss / 1024 / 1024


@contextmanager
def performance_monitor(operation_name: str, pixel_count: int = 0, cluster_count: int = 0):
    """Context manager for monitoring performance of operations."""
    start_time = time.time()
    start_memory = _rss_mb()
    start_cpu = psutil.cpu_percent()

    error_msg = None

    try:
        yield
    except Exception as e:
        error_msg = str(e) or type(e).__name__
        raise
    finally:
        end_time = time.time()
        end_memory = _rss_mb()
        end_cpu = psutil.cpu_percent()

        metrics = PerformanceMetrics(
            operation_name=operation_name,
            duration_ms=(end_time - start_time) * 1000,
            memory_usage_mb=max(end_memory, start_memory),
            cpu_percent=max(end_cpu, start_cpu),
            pixel_count=int(pixel_count),
            cluster_count=int(cluster_count),
            timestamp=end_time,
            error=error_msg
        )

        if config.METRICS_ENABLED:
            _metrics_collector.record_performance(metrics)

        if error_msg:
            logger.error(f"Operation {operation_name} failed after {metrics.duration_ms:.1f}ms: {error_msg}")
        else:
            logger.debug(f"Operation {operation_name} completed in {metrics.duration_ms:.1f}ms "
                         f"(memory: {metrics.memory_usage_mb:.1f}MB, CPU: {metrics.cpu_percent:.1f}%)")


def performance_tracked(operation_name: str):
    """Decorator for automatically tracking function performance."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            pixel_count = 0
            for arg in args:
                shape = getattr(arg, 'shape', None)
                if shape is not None and len(shape) >= 2:
                    pixel_count = shape[0] * shape[1]
                    break

            cluster_count = kwargs.get('k', kwargs.get('cluster_count', 0))

            with performance_monitor(operation_name, pixel_count, cluster_count):
                return func(*args, **kwargs)
        return wrapper
    return decorator


class PaletteRunLogger:
    """Per-run stage logger for palette extraction."""

    def __init__(self):
        self._lock = threading.Lock()
        self._runs: Dict[str, Dict[str, Any]] = {}
        self._run_id_counter = 0

    def start_run(self, image_size: tuple, cluster_count: int) -> str:
        """Start logging a new palette run."""
        with self._lock:
            self._run_id_counter += 1
            run_id = f"palette_run_{self._run_id_counter}"
            self._runs[run_id] = {
                'start_time': time.time(),
                'image_size': tuple(image_size),
                'cluster_count': cluster_count,
                'warnings': [],
                'stages': {}
            }

        logger.info(f"Starting palette run {run_id} (image: {tuple(image_size)}, k: {cluster_count})")
        return run_id

    def log_stage(self, run_id: str, stage_name: str, duration_ms: float, **kwargs):
        """Log completion of a pipeline stage."""
        with self._lock:
            run = self._runs.get(run_id)
            if run is not None:
                run['stages'][stage_name] = {'duration_ms': duration_ms, **kwargs}

        logger.debug(f"Palette run {run_id} - {stage_name} completed in {duration_ms:.1f}ms")

    def log_warning(self, run_id: str, message: str):
        """Log a warning for a run."""
        with self._lock:
            run = self._runs.get(run_id)
            if run is not None:
                run['warnings'].append(message)
        logger.warning(f"Palette run warning: {message}")

    def finish_run(self, run_id: str) -> PaletteRunMetrics:
        """Finish logging and return the run summary."""
        with self._lock:
            run = self._runs.pop(run_id, None)
        if run is None:
            raise ValueError(f"No active palette run {run_id}")

        total_duration = (time.time() - run['start_time']) * 1000
        stages = run['stages']
        clustering = stages.get('clustering', {})

        metrics = PaletteRunMetrics(
            run_id=run_id,
            total_duration_ms=total_duration,
            sampling_duration_ms=stages.get('sampling', {}).get('duration_ms', 0.0),
            clustering_duration_ms=clustering.get('duration_ms', 0.0),
            rendering_duration_ms=stages.get('rendering', {}).get('duration_ms', 0.0),
            input_image_size=run['image_size'],
            sampled_pixel_count=stages.get('sampling', {}).get('pixel_count', 0),
            cluster_count=run['cluster_count'],
            iterations=clustering.get('iterations', 0),
            converged=clustering.get('converged', False),
            warnings=run['warnings']
        )

        logger.info(f"Palette run {run_id} completed in {total_duration:.1f}ms "
                    f"(pixels: {metrics.sampled_pixel_count}, iterations: {metrics.iterations}, "
                    f"converged: {metrics.converged})")

        if metrics.warnings:
            logger.warning(f"Palette run completed with {len(metrics.warnings)} warnings")

        return metrics


# Global run logger instance
_run_logger = PaletteRunLogger()


def get_run_logger() -> PaletteRunLogger:
    """Get the global palette run logger instance."""
    return _run_logger


def log_memory_usage(stage_name: str) -> Dict[str, Any]:
    """Log current memory usage for a specific stage."""
    process = psutil.Process()
    memory_mb = process.memory_info().rss / 1024 / 1024
    cpu_percent = process.cpu_percent()

    logger.debug(f"Memory usage at {stage_name}: {memory_mb:.1f}MB (CPU: {cpu_percent:.1f}%)")

    return {
        'stage': stage_name,
        'memory_mb': memory_mb,
        'cpu_percent': cpu_percent,
        'timestamp': time.time()
    }
