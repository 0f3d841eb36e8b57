"""
ImageGene Metrics Collection
In-process metrics collection for monitoring and performance tracking.
"""
import time
from collections import defaultdict, Counter
from contextlib import contextmanager
from typing import Any, Dict, List, Optional
from threading import Lock

from loguru import logger

from imagegene.config import config


class MetricsCollector:
    """Simple in-process metrics collector."""

    def __init__(self, enabled: bool = True):
        """Initialize metrics collector."""
        self.enabled = enabled
        self._lock = Lock()
        self._counters: Dict[str, int] = Counter()
        self._timings: Dict[str, List[float]] = defaultdict(list)
        self._pixel_counts: List[float] = []
        self._start_time = time.time()

    def increment_counter(self, name: str, amount: int = 1):
        """Increment a named counter."""
        if not self.enabled:
            return
        with self._lock:
            self._counters[name] += amount

    def increment_request_count(self):
        """Increment total request counter."""
        self.increment_counter("gene_requests_total")

    def increment_analyzed_count(self):
        """Increment successfully analyzed image counter."""
        self.increment_counter("gene_images_analyzed_total")

    def increment_failure_count(self, reason: str):
        """Increment failure counter by failure reason."""
        self.increment_counter(f"gene_images_failed_total_{reason}")

    def record_timing(self, operation: str, duration_ms: float):
        """Record timing for an operation."""
        if not self.enabled:
            return
        with self._lock:
            self._timings[f"{operation}_duration_ms"].append(duration_ms)

    def record_pixel_count(self, pixel_count: float):
        """Record the sampled pixel weight of one analysis."""
        if not self.enabled:
            return
        with self._lock:
            self._pixel_counts.append(pixel_count)

    def get_counters(self) -> Dict[str, int]:
        """Get current counter values."""
        with self._lock:
            return dict(self._counters)

    def get_timing_stats(self) -> Dict[str, Dict[str, float]]:
        """Get timing statistics."""
        with self._lock:
            return {
                operation: self._summarize(timings)
                for operation, timings in self._timings.items()
                if timings
            }

    def get_pixel_count_stats(self) -> Dict[str, float]:
        """Get sampled pixel count statistics."""
        with self._lock:
            if not self._pixel_counts:
                return {}
            return self._summarize(self._pixel_counts)

    def get_uptime_seconds(self) -> float:
        """Get service uptime in seconds."""
        return time.time() - self._start_time

    def get_summary(self) -> Dict[str, Any]:
        """Get complete metrics summary."""
        return {
            "uptime_seconds": self.get_uptime_seconds(),
            "counters": self.get_counters(),
            "timing_stats": self.get_timing_stats(),
            "pixel_count_stats": self.get_pixel_count_stats()
        }

    def reset(self):
        """Reset all metrics (for testing)."""
        with self._lock:
            self._counters.clear()
            self._timings.clear()
            self._pixel_counts.clear()
            self._start_time = time.time()

    @classmethod
    def _summarize(cls, values: List[float]) -> Dict[str, float]:
        return {
            "count": len(values),
            "mean": sum(values) / len(values),
            "min": min(values),
            "max": max(values),
            "p50": cls._percentile(values, 50),
            "p95": cls._percentile(values, 95)
        }

    @staticmethod
    def _percentile(data: List[float], percentile: int) -> float:
        """Calculate percentile of data."""
        if not data:
            return 0.0

        sorted_data = sorted(data)
        k = (len(sorted_data) - 1) * percentile / 100
        f = int(k)
        c = k - f

        if f + 1 < len(sorted_data):
            return sorted_data[f] + c * (sorted_data[f + 1] - sorted_data[f])
        else:
            return sorted_data[f]


# Global metrics instance
_metrics: Optional[MetricsCollector] = None


def get_metrics() -> MetricsCollector:
    """Get or create global metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector(enabled=config.METRICS_ENABLED)
    return _metrics


def reset_metrics():
    """Reset global metrics (for testing)."""
    global _metrics
    if _metrics is not None:
        _metrics.reset()


@contextmanager
def performance_monitor(operation_name: str, **context):
    """Context manager timing an operation into the global collector."""
    start_time = time.time()
    error_msg = None

    try:
        yield
    except Exception as e:
        error_msg = str(e)
        raise
    finally:
        duration_ms = (time.time() - start_time) * 1000
        get_metrics().record_timing(operation_name, duration_ms)

        if error_msg:
            logger.bind(**context).error(
                f"Operation {operation_name} failed after {duration_ms:.1f}ms: {error_msg}")
        else:
            logger.bind(**context).debug(
                f"Operation {operation_name} completed in {duration_ms:.1f}ms")
