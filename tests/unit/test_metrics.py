"""
Unit tests for metrics collection and status logging.
"""

import logging
from pathlib import Path

import orjson
import pytest

from dexarb.core.types import ArbitrageOpportunity
from dexarb.strategy.opportunity import evaluate_pair
from dexarb.telemetry.logger import AsyncLogger, log_status
from dexarb.telemetry.metrics import MetricsCollector, SlidingWindowCounter
from tests.mocks import make_pool


def opportunity(liquidity_usd: float) -> ArbitrageOpportunity:
    pool_a = make_pool("a", "ETH", "USDC", 1.0, 2000.0, liquidity_usd)
    pool_b = make_pool("b", "ETH", "USDC", 1.0, 2050.0, liquidity_usd)
    result = evaluate_pair(pool_a, 2000.0, pool_b, 2050.0)
    assert result is not None
    return result


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    def test_counters(self, metrics: MetricsCollector) -> None:
        metrics.increment_counter("route_searches")
        metrics.increment_counter("route_searches", 4)

        assert metrics.get_counter("route_searches") == 5
        assert metrics.get_counter("unknown") == 0

    def test_latency_stats(self, metrics: MetricsCollector) -> None:
        for value in range(1, 101):
            metrics.record_latency("detection", value)

        stats = metrics.get_latency_stats("detection")

        assert stats.count == 100
        assert stats.min_us == 1
        assert stats.max_us == 100
        assert stats.avg_us == pytest.approx(50.5)
        assert metrics.get_latency_stats("missing").count == 0

    def test_latency_window(self) -> None:
        metrics = MetricsCollector(latency_window_size=10)
        for value in range(100):
            metrics.record_latency("x", value)

        assert metrics.get_latency_stats("x").min_us == 90

    def test_record_opportunity(self, metrics: MetricsCollector) -> None:
        """Test that viable and non-viable detections are both counted."""
        metrics.record_opportunity(opportunity(1_000_000.0))
        metrics.record_opportunity(opportunity(100_000.0))

        stats = metrics.detection_stats
        assert stats.opportunities_found == 2
        assert stats.opportunities_viable == 1
        assert stats.best_net_profit == pytest.approx(195.0)
        assert stats.viable_rate == 0.5
        assert metrics.opportunities_last_minute == 2

    def test_record_prices(self, metrics: MetricsCollector) -> None:
        metrics.record_prices(10, 2)
        metrics.record_prices(5)

        assert metrics.detection_stats.price_points == 15
        assert metrics.detection_stats.price_failures == 2

    def test_to_dict_and_reset(self, metrics: MetricsCollector) -> None:
        metrics.increment_counter("chain_cycle_failures")
        metrics.record_latency("route_search", 120)

        data = metrics.to_dict()

        assert data["counters"] == {"chain_cycle_failures": 1}
        assert "route_search" in data["latencies"]  # type: ignore[operator]
        assert data["detection"]["routes_found"] == 0  # type: ignore[index]

        metrics.reset()
        assert metrics.to_dict()["counters"] == {}


class TestSlidingWindowCounter:
    def test_count(self) -> None:
        counter = SlidingWindowCounter(60.0)
        counter.increment()
        counter.increment()

        assert counter.count() == 2
        assert counter.rate_per_second() == pytest.approx(2 / 60)


class TestStatusLogging:
    """Tests for the status line and queue-based logger."""

    def test_log_status(self, metrics: MetricsCollector, caplog: pytest.LogCaptureFixture) -> None:
        metrics.increment_counter("route_searches", 3)

        with caplog.at_level(logging.INFO, logger="dexarb.status"):
            log_status(metrics)

        (record,) = [r for r in caplog.records if r.name == "dexarb.status"]
        payload = orjson.loads(record.getMessage().removeprefix("Status: "))
        assert payload["counters"] == {"route_searches": 3}
        assert "detection" in payload

    def test_async_logger_writes_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "dexarb.log"

        with AsyncLogger("dexarb.test", log_file=log_file) as async_logger:
            async_logger.logger.debug("debug line")
            async_logger.logger.info("info line")

        content = log_file.read_text()
        assert "debug line" in content
        assert "info line" in content
        assert async_logger.logger.handlers == []
