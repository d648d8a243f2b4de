"""Metrics service for tracking recommendation performance.

Singleton service to track recommendation calls and latency per strategy.
"""

import threading
from typing import Dict


class _StrategyStats:
    def __init__(self):
        self.count = 0
        self.empty_count = 0
        self.total_latency_ms = 0.0
        self.min_latency_ms = float("inf")
        self.max_latency_ms = 0.0

    def as_dict(self) -> Dict:
        avg_latency = self.total_latency_ms / self.count if self.count > 0 else 0.0
        return {
            "inference_count": self.count,
            "empty_result_count": self.empty_count,
            "average_latency_ms": round(avg_latency, 2),
            "min_latency_ms": round(self.min_latency_ms, 2) if self.count else 0.0,
            "max_latency_ms": round(self.max_latency_ms, 2),
        }


class MetricsService:
    """Singleton service for tracking API metrics.

    Thread-safe counters and latency tracking, kept separately for each
    recommendation strategy.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        """Create singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(MetricsService, cls).__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._lock = threading.Lock()
        self._stats: Dict[str, _StrategyStats] = {}
        self._initialized = True

    def record_inference(
        self, strategy: str, latency_ms: float, num_results: int
    ) -> None:
        """Record a recommendation call.

        Args:
            strategy: Strategy that served the call
            latency_ms: Latency in milliseconds
            num_results: Number of products returned
        """
        with self._lock:
            stats = self._stats.setdefault(strategy, _StrategyStats())
            stats.count += 1
            stats.total_latency_ms += latency_ms
            if num_results == 0:
                stats.empty_count += 1
            stats.min_latency_ms = min(stats.min_latency_ms, latency_ms)
            stats.max_latency_ms = max(stats.max_latency_ms, latency_ms)

    def get_metrics(self) -> Dict:
        """Get current metrics.

        Returns:
            Dictionary with the total inference count and a per-strategy
            breakdown of counts and latency.
        """
        with self._lock:
            return {
                "inference_count": sum(s.count for s in self._stats.values()),
                "strategies": {
                    name: stats.as_dict() for name, stats in self._stats.items()
                },
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._stats = {}


# Global singleton instance
metrics_service = MetricsService()
