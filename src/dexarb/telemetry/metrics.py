"""
Metrics collection for performance monitoring.

Tracks latencies, counters, and detection statistics
with efficient in-memory storage.
"""

import time
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from dexarb.core.types import ArbitrageOpportunity, ArbitrageRoute


@dataclass
class LatencyStats:
    """Aggregated latency statistics."""

    min_us: int = 0
    max_us: int = 0
    avg_us: float = 0.0
    p50_us: int = 0
    p95_us: int = 0
    p99_us: int = 0
    count: int = 0


@dataclass
class DetectionStats:
    """Opportunity and route detection statistics."""

    price_points: int = 0
    price_failures: int = 0
    opportunities_found: int = 0
    opportunities_viable: int = 0
    best_net_profit: float = 0.0
    total_net_profit: float = 0.0
    routes_found: int = 0
    routes_flash_loan: int = 0
    best_route_profit: float = 0.0

    @property
    def viable_rate(self) -> float:
        """Share of detected opportunities that were viable."""
        if self.opportunities_found == 0:
            return 0.0
        return self.opportunities_viable / self.opportunities_found


class MetricsCollector:
    """
    Collects and aggregates performance metrics.

    Features:
    - Rolling window latency tracking
    - Counter-based event tracking
    - Opportunity and route accounting
    - Sliding one-minute opportunity rate
    """

    def __init__(
        self,
        latency_window_size: int = 1000,
    ) -> None:
        """
        Initialize metrics collector.

        Args:
            latency_window_size: Number of samples to keep for latency stats.
        """
        self._window_size = latency_window_size
        self._latencies: dict[str, deque[int]] = {}
        self._counters: dict[str, int] = {}
        self._detection_stats = DetectionStats()
        self._opportunity_window = SlidingWindowCounter(60.0)
        self._start_time = time.time()

    def record_latency(self, name: str, latency_us: int) -> None:
        """
        Record a latency measurement.

        Args:
            name: Metric name (e.g., "price_collection", "route_search").
            latency_us: Latency in microseconds.
        """
        if name not in self._latencies:
            self._latencies[name] = deque(maxlen=self._window_size)

        self._latencies[name].append(latency_us)

    def increment_counter(self, name: str, value: int = 1) -> None:
        """
        Increment a counter.

        Args:
            name: Counter name.
            value: Amount to increment.
        """
        self._counters[name] = self._counters.get(name, 0) + value

    def get_counter(self, name: str) -> int:
        """Get counter value."""
        return self._counters.get(name, 0)

    def record_prices(self, collected: int, failed: int = 0) -> None:
        """Record one chain's price collection outcome."""
        self._detection_stats.price_points += collected
        self._detection_stats.price_failures += failed

    def record_opportunity(self, opportunity: "ArbitrageOpportunity") -> None:
        """
        Record a pairwise opportunity detection.

        Args:
            opportunity: Detected opportunity, viable or not.
        """
        stats = self._detection_stats
        stats.opportunities_found += 1
        self._opportunity_window.increment()

        if opportunity.viable:
            stats.opportunities_viable += 1
            stats.total_net_profit += opportunity.net_profit

        if opportunity.net_profit > stats.best_net_profit:
            stats.best_net_profit = opportunity.net_profit

    def record_routes(self, routes: Iterable["ArbitrageRoute"]) -> None:
        """Record routes returned by a route search."""
        stats = self._detection_stats
        for route in routes:
            stats.routes_found += 1
            if route.flash_loan_required:
                stats.routes_flash_loan += 1
            if route.estimated_profit > stats.best_route_profit:
                stats.best_route_profit = route.estimated_profit

    def get_latency_stats(self, name: str) -> LatencyStats:
        """
        Get latency statistics for a metric.

        Args:
            name: Metric name.

        Returns:
            LatencyStats with aggregated values.
        """
        samples = self._latencies.get(name)
        if not samples:
            return LatencyStats()

        sorted_samples = sorted(samples)
        n = len(sorted_samples)

        return LatencyStats(
            min_us=sorted_samples[0],
            max_us=sorted_samples[-1],
            avg_us=sum(sorted_samples) / n,
            p50_us=sorted_samples[n // 2],
            p95_us=sorted_samples[int(n * 0.95)],
            p99_us=sorted_samples[int(n * 0.99)] if n > 1 else sorted_samples[-1],
            count=n,
        )

    def get_all_latency_stats(self) -> dict[str, LatencyStats]:
        """Get latency stats for all metrics."""
        return {name: self.get_latency_stats(name) for name in self._latencies}

    @property
    def detection_stats(self) -> DetectionStats:
        """Get detection statistics."""
        return self._detection_stats

    @property
    def uptime_seconds(self) -> float:
        """Get uptime in seconds."""
        return time.time() - self._start_time

    @property
    def opportunities_last_minute(self) -> int:
        return self._opportunity_window.count()

    def get_rates(self) -> dict[str, float]:
        """
        Calculate per-minute rates for counters.

        Returns:
            Dict of counter -> rate per minute.
        """
        minutes = self.uptime_seconds / 60
        if minutes == 0:
            return {}

        return {
            f"{name}_per_min": count / minutes
            for name, count in self._counters.items()
        }

    def to_dict(self) -> dict[str, object]:
        """
        Export all metrics as a dict.

        Returns:
            Dict representation of all metrics.
        """
        stats = self._detection_stats
        return {
            "uptime_seconds": self.uptime_seconds,
            "counters": dict(self._counters),
            "latencies": {
                name: {
                    "min": s.min_us,
                    "max": s.max_us,
                    "avg": s.avg_us,
                    "p50": s.p50_us,
                    "p99": s.p99_us,
                    "count": s.count,
                }
                for name, s in self.get_all_latency_stats().items()
            },
            "detection": {
                "price_points": stats.price_points,
                "price_failures": stats.price_failures,
                "opportunities_found": stats.opportunities_found,
                "opportunities_viable": stats.opportunities_viable,
                "opportunities_last_minute": self.opportunities_last_minute,
                "best_net_profit": stats.best_net_profit,
                "total_net_profit": stats.total_net_profit,
                "routes_found": stats.routes_found,
                "routes_flash_loan": stats.routes_flash_loan,
                "best_route_profit": stats.best_route_profit,
            },
        }

    def reset(self) -> None:
        """Reset all metrics."""
        self._latencies.clear()
        self._counters.clear()
        self._detection_stats = DetectionStats()
        self._opportunity_window = SlidingWindowCounter(60.0)
        self._start_time = time.time()


class SlidingWindowCounter:
    """
    Counter with sliding time window.

    Tracks counts over a rolling time period.
    """

    def __init__(self, window_seconds: float = 60.0) -> None:
        """
        Initialize sliding window counter.

        Args:
            window_seconds: Size of the time window.
        """
        self._window_seconds = window_seconds
        self._events: deque[float] = deque()

    def increment(self) -> None:
        """Record an event at current time."""
        now = time.monotonic()
        self._events.append(now)
        self._prune(now)

    def _prune(self, now: float) -> None:
        """Remove events outside the window."""
        cutoff = now - self._window_seconds
        while self._events and self._events[0] < cutoff:
            self._events.popleft()

    def count(self) -> int:
        """Get count of events in window."""
        self._prune(time.monotonic())
        return len(self._events)

    def rate_per_second(self) -> float:
        """Get rate per second."""
        return self.count() / self._window_seconds
